import asyncio
import logging
import os
import sys

import httpx
from dotenv import load_dotenv

from coucou.core.config import BACKEND_DIR, CoucouSettings, load_settings_or_exit
from coucou.core.context import BotContext
from coucou.core.dispatcher import Dispatcher
from coucou.core.logging import setup_logging
from coucou.core.outbox import Outbox
from coucou.core.state import StateStore
from coucou.core.tasks import Services, root_causes, run_services
from coucou.core.transport import TwitchChatBot
from coucou.reminders.scheduler import ReminderScheduler
from coucou.twitch.api import HelixClient
from coucou.twitch.credentials import CredentialManager
from coucou.twitch.leases import LeaseManager
from coucou.twitch.notifications import NotificationConsumer, NotificationPipeline
from coucou.twitch.webhook_server import WebhookServer
from shared.database import Database
from shared.repositories import ReminderRepository, TokenRepository, UserSettingRepository

LOGGER: logging.Logger = logging.getLogger("Bot")

HTTP_TIMEOUT = 10.0


async def runner(settings: CoucouSettings) -> None:
    db = Database(settings.database_url)
    await db.open()

    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as http:
            credentials = CredentialManager(
                settings.twitch_client_id, settings.twitch_client_secret, http
            )
            api = HelixClient(
                credentials,
                http,
                callback_url=settings.twitch_webhook_callback_url,
                secret=settings.twitch_webhook_secret,
            )
            leases = LeaseManager(api)
            pipeline = NotificationPipeline()

            state = StateStore(
                url_capacity=settings.url_history_size,
                settings_repo=UserSettingRepository(db.pool),
            )
            await state.load_settings()

            outbox = Outbox()
            reminders = ReminderScheduler(ReminderRepository(db.pool), outbox)

            ctx = BotContext(
                state=state,
                outbox=outbox,
                reminders=reminders,
                http=http,
                bot_nick=settings.bot_nick,
                credentials=credentials,
                api=api,
                leases=leases,
                pipeline=pipeline,
                watchers=settings.stream_watchers,
            )
            dispatcher = Dispatcher(ctx)

            async with TwitchChatBot(
                client_id=settings.twitch_client_id,
                client_secret=settings.twitch_client_secret,
                bot_id=settings.bot_id,
                owner_id=settings.owner_id,
                channels=settings.channels,
                tokens=TokenRepository(db.pool),
                on_message=dispatcher.submit,
            ) as bot:
                outbox.transport = bot
                LOGGER.info(
                    f"Starting bot for {', '.join(settings.channels)} "
                    f"watching {len(settings.stream_watchers)} streams"
                )
                await run_services(
                    Services(
                        bot=bot,
                        outbox=outbox,
                        consumer=NotificationConsumer(
                            pipeline, settings.stream_watchers, outbox, state
                        ),
                        webhook=WebhookServer(
                            pipeline,
                            leases,
                            port=settings.twitch_webhook_server_port,
                            secret=settings.twitch_webhook_secret,
                            db_health=db.check_health,
                        ),
                        leases=leases,
                        reminders=reminders,
                        watchers=settings.stream_watchers,
                    )
                )
    finally:
        await db.close()


def main() -> None:
    load_dotenv(dotenv_path=BACKEND_DIR / ".env")
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    settings = load_settings_or_exit()

    failed = False
    try:
        try:
            asyncio.run(runner(settings))
        except* Exception as group:
            for exc in root_causes(group):
                LOGGER.error(
                    f"Background task failed: {type(exc).__name__}: {exc}",
                    exc_info=(type(exc), exc, exc.__traceback__),
                )
            failed = True
    except KeyboardInterrupt:
        LOGGER.warning("Shutting down due to KeyboardInterrupt...")

    if failed:
        LOGGER.error("Shutting down, exiting with status 1")
        sys.exit(1)


if __name__ == "__main__":
    main()
