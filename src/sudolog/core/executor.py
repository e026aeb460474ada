"""
Execution of the privileged command once its audit entry is durable.

The command runs as a child of this process (``sudo <argv>``) with inherited
stdin/stdout/stderr. While it runs, SIGINT/SIGTERM/SIGHUP delivered to us are
forwarded to the child. When the child exits, its status is propagated: an
exit code is returned, a terminating signal is re-raised on this process.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from collections.abc import Sequence

logger = logging.getLogger(__name__)

_FORWARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


def run_privileged(argv: Sequence[str], sudo: str = "sudo") -> int:
    """
    Run ``sudo *argv`` to completion and return its exit code.

    If the child was killed by a signal, the same signal is re-raised on the
    current process with the default disposition (so the caller usually does
    not return). Should the re-raised signal not terminate us, ``128 + signo``
    is returned, matching shell conventions.
    """
    cmd = [sudo, *argv]
    logger.info("Executing %s", " ".join(cmd))

    with subprocess.Popen(cmd) as proc:  # nosec B603
        previous = {sig: signal.getsignal(sig) for sig in _FORWARDED_SIGNALS}

        def _forward(signum: int, _frame: object) -> None:
            if proc.poll() is None:
                proc.send_signal(signum)

        try:
            for sig in _FORWARDED_SIGNALS:
                signal.signal(sig, _forward)
            returncode = proc.wait()
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    if returncode < 0:
        signo = -returncode
        logger.info("Command terminated by signal %d; re-raising", signo)
        signal.signal(signo, signal.SIG_DFL)
        os.kill(os.getpid(), signo)
        return 128 + signo
    return returncode
