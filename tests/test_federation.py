# test_federation.py
import pytest
from stellar_sdk import Keypair
from stellar_sdk import exceptions
from stellar_sdk.sep.exceptions import BadFederationResponseError
from stellar_sdk.sep.federation import FederationRecord

from stellarcli import federation
from stellarcli.exceptions import HorizonError, ValidationError


class FakeResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


def raising(error):
    def resolve(address):
        raise error
    return resolve


class TestFederationLookup:
    def test_found(self, monkeypatch):
        account_id = Keypair.random().public_key
        monkeypatch.setattr(federation, "resolve_stellar_address",
                            lambda address: FederationRecord(account_id, address, None, None))
        result = federation.lookup("bob*example.com")
        assert result.account_id == account_id
        assert result.memo_type == ""
        assert result.memo == ""

    def test_memo(self, monkeypatch):
        account_id = Keypair.random().public_key
        monkeypatch.setattr(federation, "resolve_stellar_address",
                            lambda address: FederationRecord(account_id, address, "text", "hello"))
        result = federation.lookup("bob*example.com")
        assert (result.memo_type, result.memo) == ("text", "hello")

    def test_unknown_name(self, monkeypatch):
        monkeypatch.setattr(federation, "resolve_stellar_address",
                            raising(BadFederationResponseError(FakeResponse(404, "not found"))))
        assert federation.lookup("nobody*example.com") is None

    def test_server_error(self, monkeypatch):
        monkeypatch.setattr(federation, "resolve_stellar_address",
                            raising(BadFederationResponseError(FakeResponse(500, "oops"))))
        with pytest.raises(HorizonError) as e:
            federation.lookup("bob*example.com")
        assert e.value.status == 500

    def test_connection_error(self, monkeypatch):
        monkeypatch.setattr(federation, "resolve_stellar_address",
                            raising(exceptions.ConnectionError("no route to host")))
        with pytest.raises(HorizonError):
            federation.lookup("bob*example.com")

    @pytest.mark.parametrize("address", ["bob", "*example.com", "bob*", "bob*ex*ample.com"])
    def test_invalid_address(self, address):
        with pytest.raises(ValidationError):
            federation.lookup(address)
