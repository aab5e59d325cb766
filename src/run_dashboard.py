import asyncio
import logging

from dotenv import load_dotenv

load_dotenv()

from client.time_client import TimeClient
from service.config import DashboardConfig, configure_logging, get_supabase_config
from service.dashboard import DashboardSession
from session.models import RedirectIntent
from session.provider import SupabaseSessionProvider

log_level = configure_logging()
logger = logging.getLogger('dashboard.runner')


def log_redirect(intent: RedirectIntent) -> None:
    logger.warning(f"Redirect requested: {intent.path} (return to {intent.from_path})")


async def main() -> None:
    config = DashboardConfig.from_env()
    supabase_url, supabase_key = get_supabase_config()
    provider = await SupabaseSessionProvider.create(supabase_url, supabase_key)

    async with TimeClient(config.api_base_url, timeout=config.request_timeout) as time_client:
        dashboard = DashboardSession(provider, time_client, log_redirect, config=config)
        dashboard.heartbeat.add_listener(
            lambda active: logger.info(f"Clock status: {'clocked in' if active else 'clocked out'}")
        )
        async with dashboard:
            if dashboard.session is None:
                logger.info("No session available; sign in first")
                return
            logger.info(f"Watching session for {dashboard.session.user.email if dashboard.session.user else 'unknown user'}")
            while dashboard.session is not None:
                await asyncio.sleep(config.heartbeat_interval)


if __name__ == "__main__":
    logging.info(f"Dashboard session client starting (log level: {log_level})")
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.info("Dashboard session client stopped")
