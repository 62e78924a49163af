"""Resolve federation addresses like bob*example.com to an account and memo."""
from dataclasses import dataclass
from typing import Optional

from stellar_sdk import exceptions
from stellar_sdk.sep.exceptions import BadFederationResponseError, InvalidFederationAddress
from stellar_sdk.sep.federation import resolve_stellar_address

from .exceptions import HorizonError, ValidationError
from .log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FederationResult:
    account_id: str
    memo_type: str = ""
    memo: str = ""


def check_federation_address(address: str) -> str:
    name, sep, domain = address.partition("*")
    if not sep or not name or not domain or "*" in domain:
        raise ValidationError("Invalid federation address, expected name*domain.")
    return address


def lookup(address: str) -> Optional[FederationResult]:
    """The account behind a federation address, or None if the server does not know it."""
    check_federation_address(address)
    logger.debug(f"Federation lookup {address}")
    try:
        record = resolve_stellar_address(address)
    except InvalidFederationAddress as e:
        raise ValidationError(str(e)) from e
    except BadFederationResponseError as e:
        if e.status == 404:
            return None
        raise HorizonError("Federation lookup", e.message or f"HTTP {e.status}", status=e.status) from e
    except exceptions.SdkError as e:
        raise HorizonError("Federation lookup", str(e)) from e

    return FederationResult(
        account_id=record.account_id,
        memo_type=record.memo_type or "",
        memo=record.memo or "",
    )
