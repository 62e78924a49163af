"""Secret strings that are wiped when they go out of scope."""
from typing import Optional, Union


class ScopedSecret:
    """
    Holds a secret (password or seed) in a bytearray that is overwritten with
    zeros on wipe(). Use it as a context manager so the wipe happens on every
    exit path:

        with ScopedSecret(getpass.getpass("Password: ")) as pw:
            wallet.unlock(pw)
    """

    __slots__ = ("_buf",)

    def __init__(self, value: Optional[Union[str, bytes, bytearray]] = None):
        if value is None:
            self._buf = bytearray()
        elif isinstance(value, str):
            self._buf = bytearray(value.encode("utf-8"))
        else:
            self._buf = bytearray(value)

    def __enter__(self) -> "ScopedSecret":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __len__(self) -> int:
        return len(self._buf)

    def __bool__(self) -> bool:
        return len(self._buf) > 0

    def __repr__(self) -> str:
        return "ScopedSecret(***)"

    def copy(self) -> "ScopedSecret":
        return ScopedSecret(self._buf)

    def bytes(self) -> bytes:
        return bytes(self._buf)

    def reveal(self) -> str:
        """Return the secret as str. The returned str cannot be wiped, keep its lifetime short."""
        return self._buf.decode("utf-8")

    def wipe(self) -> None:
        for i in range(len(self._buf)):
            self._buf[i] = 0
        del self._buf[:]


def as_secret(value: Union[str, bytes, bytearray, ScopedSecret]) -> ScopedSecret:
    """Wrap plain values; ScopedSecret arguments are copied so the caller keeps ownership."""
    if isinstance(value, ScopedSecret):
        return value.copy()
    return ScopedSecret(value)
