# test_signers.py
import pytest
from stellar_sdk import Keypair

from stellarcli.signers import SignerSet


class TestSignerSet:
    @pytest.fixture
    def signer_file(self, tmp_path):
        seeds = [Keypair.random() for _ in range(2)]
        path = tmp_path / "signers.txt"
        path.write_text(
            "# cold storage keys\n"
            f"{seeds[0].secret}   # first\n"
            "\n"
            f"{Keypair.random().public_key}\n"
            "not a key at all\n"
            f"  {seeds[1].secret}\n"
        )
        return str(path), seeds

    def test_read_file(self, signer_file):
        path, seeds = signer_file
        with SignerSet() as signers:
            assert signers.read_file(path) == 2
            assert signers.public_keys() == [kp.public_key for kp in seeds]

    def test_cap(self, signer_file):
        path, seeds = signer_file
        signers = SignerSet(max_signers=1)
        assert signers.read_file(path) == 1
        assert signers.is_full()
        assert not signers.add(Keypair.random().secret)
        assert signers.public_keys() == [seeds[0].public_key]

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            SignerSet().read_file(str(tmp_path / "nope.txt"))

    def test_wiped_on_exit(self):
        with SignerSet() as signers:
            signers.add(Keypair.random().secret)
            assert len(signers) == 1
        assert len(signers) == 0

    def test_wiped_on_exception(self):
        with pytest.raises(RuntimeError):
            with SignerSet() as signers:
                signers.add(Keypair.random().secret)
                raise RuntimeError("boom")
        assert len(signers) == 0
        assert signers.keypairs() == []

    def test_read_interactive(self):
        kp = Keypair.random()
        answers = iter(["garbage", kp.secret, ""])
        complaints = []

        signers = SignerSet()
        count = signers.read_interactive(read=lambda prompt: next(answers), on_invalid=complaints.append)
        assert count == 1
        assert signers.public_keys() == [kp.public_key]
        assert complaints == ["Invalid secret seed."]

    def test_read_interactive_stops_when_full(self):
        signers = SignerSet(max_signers=2)
        signers.add(Keypair.random().secret)
        count = signers.read_interactive(read=lambda prompt: Keypair.random().secret)
        assert count == 1
        assert len(signers) == 2

    def test_add_wallet_account(self, unlocked_wallet):
        account = unlocked_wallet.accounts()[0]
        watched = unlocked_wallet.add_watching_account(Keypair.random().public_key)
        with SignerSet() as signers:
            assert signers.add_wallet_account(unlocked_wallet, account)
            assert not signers.add_wallet_account(unlocked_wallet, watched)
            assert signers.public_keys() == [account.public_key]
