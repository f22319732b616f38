import sys
import socket
import os
from shutil import which as _which

logprefix = ''
verbose = 0


def log(s):
    global logprefix
    try:
        sys.stdout.flush()
    except (IOError, ValueError):  # ValueError ~ I/O operation on closed file
        pass
    try:
        # Put newline at end of string if line doesn't have one.
        if not s.endswith("\n"):
            s = s+"\n"

        prefix = logprefix
        s = s.rstrip("\n")
        for line in s.split("\n"):
            sys.stderr.write(prefix + line + "\n")
            prefix = "    "
        sys.stderr.flush()
    except (IOError, ValueError):  # ValueError ~ I/O operation on closed file
        # stderr may be gone if the controlling process closed it; losing a
        # log line is no reason to leave the rules half configured.
        pass


def debug1(s):
    if verbose >= 1:
        log(s)


def debug2(s):
    if verbose >= 2:
        log(s)


def debug3(s):
    if verbose >= 3:
        log(s)


class Fatal(Exception):
    pass


class TableError(Fatal):
    """A request the controller refused before touching the kernel.

    ``errno`` is EBUSY when fwmark infrastructure already exists for the
    network and EINVAL when the network registry rejected a uid binding.
    """

    def __init__(self, err, message):
        super(TableError, self).__init__(message)
        self.errno = err


def family_to_string(family):
    if family == socket.AF_INET6:
        return "AF_INET6"
    elif family == socket.AF_INET:
        return "AF_INET"
    else:
        return str(family)


def get_env():
    """An environment for polroute subprocesses. See get_path()."""
    env = {
        'PATH': get_path(),
        'LC_ALL': "C",
    }
    return env


def get_path():
    """Returns a string of paths separated by os.pathsep.

    iptables and ip usually live in /sbin or /usr/sbin, which are often
    missing from the PATH of the process that starts us. Use PATH and a
    hardcoded set of paths to search through. This function is used by
    our which() and get_env() functions so that what which() finds is
    also what the subprocesses run.
    """
    path = []
    if "PATH" in os.environ:
        path += os.environ["PATH"].split(os.pathsep)
    # Python default paths.
    path += os.defpath.split(os.pathsep)
    # /sbin, etc are not in os.defpath and may not be in PATH either.
    path += ['/bin', '/usr/bin', '/sbin', '/usr/sbin']

    path_dedup = []
    for i in path:
        if i not in path_dedup:
            path_dedup.append(i)

    return os.pathsep.join(path_dedup)


def which(file, mode=os.F_OK | os.X_OK):
    """A wrapper around shutil.which() that searches a predictable set of
    paths and is more verbose about what is happening. See get_path()
    for more information.
    """
    path = get_path()
    rv = _which(file, mode, path)
    if rv:
        debug2("which() found '%s' at %s" % (file, rv))
    else:
        debug2("which() could not find '%s' in %s" % (file, path))
    return rv
