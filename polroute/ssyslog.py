import sys
import os
import subprocess as ssubprocess

from polroute.helpers import get_env


_p = None


def start_syslog(tag='polroute'):
    global _p
    with open(os.devnull, 'w') as devnull:
        _p = ssubprocess.Popen(
            ['logger', '-p', 'daemon.notice', '-t', tag],
            stdin=ssubprocess.PIPE,
            stdout=devnull,
            stderr=devnull,
            env=get_env()
        )


def stderr_to_syslog():
    """Send everything log() writes to the logger process.

    stdout stays where it is: it carries the replies to our caller.
    """
    sys.stderr.flush()
    os.dup2(_p.stdin.fileno(), sys.stderr.fileno())
