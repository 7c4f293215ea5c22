"""Cross-platform advisory file locking."""

import sys
from typing import Any


def lock_file(file_obj: Any, exclusive: bool = True) -> None:
    """Lock a file in a cross-platform way.

    Args:
        file_obj: File object to lock
        exclusive: If True, acquire exclusive lock; if False, acquire shared lock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        mode = msvcrt.LK_NBLCK if exclusive else msvcrt.LK_NBRLCK
        msvcrt.locking(file_obj.fileno(), mode, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        mode = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(file_obj.fileno(), mode)


def unlock_file(file_obj: Any) -> None:
    """Unlock a file in a cross-platform way.

    Args:
        file_obj: File object to unlock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        msvcrt.locking(file_obj.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        fcntl.flock(file_obj.fileno(), fcntl.LOCK_UN)
