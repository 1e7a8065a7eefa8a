from typing import Optional

from dotenv import load_dotenv
from loguru import logger

from iamfetch.core.config import Settings
from iamfetch.core.logging import configure_logging
from iamfetch.models.account_data import AccountData
from iamfetch.providers.aws_provider import AwsProvider
from iamfetch.services.fetcher import AwsFetcher


def fetch_account_data(settings: Optional[Settings] = None) -> AccountData:
    """
    Fetch a snapshot of the account behind the configured credentials.

    Reads `.env` into the environment first so boto3 can pick up credentials
    from it, then builds the provider and fetcher from settings.
    """
    load_dotenv()
    if settings is None:
        settings = Settings()
    configure_logging(settings.LOG_LEVEL)

    provider = AwsProvider(
        region=settings.AWS_REGION,
        profile_name=settings.AWS_PROFILE,
        role_arn=settings.AWS_ROLE_ARN,
        max_workers=settings.FETCH_MAX_WORKERS,
    )
    logger.info(f"Starting fetch (region={provider.region}, profile={settings.AWS_PROFILE or 'default'})")
    return AwsFetcher.from_settings(provider, settings).fetch()
