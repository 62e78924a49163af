"""
Horizon boundary.

Everything the client asks the network goes through HorizonClient. Calls
return the decoded JSON records. A missing account is answered with None;
every other failure is raised as HorizonError with the remote title and,
for rejected transactions, the result codes.
"""
from typing import Any, Dict, List, Optional, Tuple, Union

import requests
from stellar_sdk import Server, TransactionEnvelope
from stellar_sdk import exceptions

from .asset import Asset
from .config import HORIZON_PAGE_LIMIT, HTTP_TIMEOUT, NetworkConfig
from .exceptions import HorizonError
from .log import get_logger

logger = get_logger(__name__)

Record = Dict[str, Any]


def _records(response: Record) -> List[Record]:
    return response.get("_embedded", {}).get("records", [])


def _horizon_error(action: str, e: Exception) -> HorizonError:
    if isinstance(e, exceptions.BaseHorizonError):
        result_codes = (e.extras or {}).get("result_codes")
        return HorizonError(action, e.title or str(e), result_codes, e.status)
    if isinstance(e, exceptions.ConnectionError):
        return HorizonError(action, f"Connection error: {e}")
    return HorizonError(action, str(e))


class HorizonClient:
    def __init__(self, network: NetworkConfig, server: Optional[Server] = None):
        self.network = network
        self.server = server or Server(network.horizon_url)

    def load_account(self, account_id: str) -> Optional[Record]:
        logger.debug(f"Loading account {account_id}")
        try:
            return self.server.accounts().account_id(account_id).call()
        except exceptions.NotFoundError:
            return None
        except exceptions.BaseRequestError as e:
            raise _horizon_error("Load account", e) from e

    def order_book(self, selling: Asset, buying: Asset, limit: int = HORIZON_PAGE_LIMIT) -> Record:
        logger.debug(f"Loading order book {selling} / {buying}")
        try:
            return self.server.orderbook(selling.to_sdk(), buying.to_sdk()).limit(limit).call()
        except exceptions.BaseRequestError as e:
            raise _horizon_error("Load order book", e) from e

    def account_offers(self, account_id: str) -> List[Record]:
        """All open offers of an account, following the paging cursor."""
        offers: List[Record] = []
        cursor = None
        while True:
            try:
                builder = self.server.offers().for_seller(account_id).limit(HORIZON_PAGE_LIMIT)
                if cursor:
                    builder = builder.cursor(cursor)
                page = _records(builder.call())
            except exceptions.NotFoundError:
                return offers
            except exceptions.BaseRequestError as e:
                raise _horizon_error("Load offers", e) from e

            offers.extend(page)
            if len(page) < HORIZON_PAGE_LIMIT:
                return offers
            cursor = page[-1]["paging_token"]

    def account_transactions(self, account_id: str, limit: int,
                             cursor: str = "") -> List[Record]:
        """Newest first."""
        try:
            builder = self.server.transactions().for_account(account_id).limit(limit).order(desc=True)
            if cursor:
                builder = builder.cursor(cursor)
            return _records(builder.call())
        except exceptions.NotFoundError:
            return []
        except exceptions.BaseRequestError as e:
            raise _horizon_error("Load transactions", e) from e

    def account_trades(self, account_id: str, limit: int, cursor: str = "") -> List[Record]:
        """Newest first."""
        try:
            builder = self.server.trades().for_account(account_id).limit(limit).order(desc=True)
            if cursor:
                builder = builder.cursor(cursor)
            return _records(builder.call())
        except exceptions.NotFoundError:
            return []
        except exceptions.BaseRequestError as e:
            raise _horizon_error("Load trades", e) from e

    def submit_transaction(self, envelope: Union[TransactionEnvelope, str]) -> Record:
        try:
            response = self.server.submit_transaction(envelope)
        except exceptions.BaseRequestError as e:
            error = _horizon_error("Submit transaction", e)
            logger.warning(f"Transaction failed: {error.describe()}")
            raise error from e
        logger.info(f"Transaction submitted: {response.get('hash')}")
        return response

    def fund(self, account_id: str) -> Tuple[bool, str]:
        """Ask the testnet friendbot to create and fund an account."""
        if not self.network.friendbot_url:
            raise HorizonError("Fund account", f"No friendbot on network {self.network.name}")
        try:
            r = requests.get(self.network.friendbot_url, params={"addr": account_id}, timeout=HTTP_TIMEOUT)
        except requests.RequestException as e:
            raise HorizonError("Fund account", f"Connection error: {e}") from e
        if r.status_code != 200:
            try:
                title = r.json().get("detail") or r.json().get("title") or r.text
            except ValueError:
                title = r.text
            return False, title
        return True, r.json().get("hash", "")
