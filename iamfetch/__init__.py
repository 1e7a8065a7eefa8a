from iamfetch.core.exceptions import FetchError, FetchPhase
from iamfetch.models.account import Account
from iamfetch.models.account_data import AccountData
from iamfetch.services.fetcher import AwsFetcher

__version__ = "0.1.0"

__all__ = ["Account", "AccountData", "AwsFetcher", "FetchError", "FetchPhase"]
