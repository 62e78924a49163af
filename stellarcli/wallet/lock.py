"""
Wallet password unlock window.

The password is kept in memory only while the wallet is unlocked. Every user
of the password holds the lock count up for the duration of its work; a
background timer wipes the password once nobody holds it and the idle timeout
since the last unlock has passed. All state lives behind one Condition, so the
timer can never wipe the password while the count is non-zero.
"""
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Union

from ..config import PASSWORD_TIMEOUT
from ..exceptions import WalletLockedError
from ..log import get_logger
from ..secret import ScopedSecret, as_secret

logger = get_logger(__name__)


class PasswordMonitor:
    def __init__(self, timeout: float = PASSWORD_TIMEOUT,
                 clock: Callable[[], float] = time.monotonic,
                 tick: float = 1.0):
        self.timeout = timeout
        self._clock = clock
        self._tick = tick
        self._cond = threading.Condition()
        self._password: Optional[ScopedSecret] = None
        self._count = 0
        self._unlock_time = 0.0
        self._thread: Optional[threading.Thread] = None
        self._stopping = False

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    @property
    def is_unlocked(self) -> bool:
        with self._cond:
            return self._password is not None

    def acquire(self, password: Optional[Union[str, ScopedSecret]] = None) -> None:
        """
        Hold the unlock window open. With a password, it becomes the live
        password and the idle timer restarts. Without one, a password must
        already be held, else WalletLockedError.
        """
        with self._cond:
            if password is not None:
                self._set_password(as_secret(password))
            elif self._password is None:
                raise WalletLockedError("Wallet is locked.")
            self._count += 1
            self._cond.notify_all()

    def release(self) -> None:
        with self._cond:
            if self._count > 0:
                self._count -= 1
            self._cond.notify_all()

    def lock(self) -> None:
        """Wipe the password now. Holders keep working on their own copies."""
        with self._cond:
            self._wipe()
            self._cond.notify_all()

    @contextmanager
    def password(self) -> Iterator[ScopedSecret]:
        """Yield a private copy of the live password, wiped on exit."""
        with self._cond:
            if self._password is None:
                raise WalletLockedError("Wallet is locked.")
            self._count += 1
            secret = self._password.copy()
        try:
            yield secret
        finally:
            secret.wipe()
            self.release()

    def expire(self) -> bool:
        """One timer tick: wipe the password if idle and not held. Returns True if wiped."""
        with self._cond:
            if self._password is None or self._count > 0:
                return False
            if self._clock() - self._unlock_time < self.timeout:
                return False
            self._wipe()
            logger.debug("Wallet password timed out")
            return True

    def start(self) -> None:
        with self._cond:
            if self._thread is not None:
                return
            self._stopping = False
            self._thread = threading.Thread(target=self._run, name="wallet-autolock", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        with self._cond:
            thread = self._thread
            self._stopping = True
            self._cond.notify_all()
        if thread is not None:
            thread.join()
        with self._cond:
            self._thread = None

    def _run(self) -> None:
        with self._cond:
            while not self._stopping:
                self._cond.wait(self._tick)
                if not self._stopping:
                    self.expire()

    def _set_password(self, secret: ScopedSecret) -> None:
        if self._password is not None:
            self._password.wipe()
        self._password = secret
        self._unlock_time = self._clock()

    def _wipe(self) -> None:
        if self._password is not None:
            self._password.wipe()
            self._password = None
