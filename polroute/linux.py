import socket
import subprocess as ssubprocess
from polroute.helpers import log, debug1, Fatal, family_to_string, get_env

# exit status a shell reports for a command it cannot find
NOT_FOUND = 127
# exit status iptables uses for a bad parameter
BAD_PARAMETER = 2


def nonfatal(func, *args):
    try:
        return func(*args)
    except Fatal as e:
        log('error: %s' % e)


def _call(argv):
    debug1('%s' % ' '.join(argv))
    try:
        rv = ssubprocess.call(argv, env=get_env())
    except OSError as e:
        log('error: %s: %s' % (argv[0], e))
        return NOT_FOUND
    except ValueError as e:
        # e.g. an embedded null byte, which no exec can pass on
        log('error: %s: %s' % (argv[0], e))
        return BAD_PARAMETER
    if rv:
        debug1('%r returned %d' % (argv, rv))
    return rv


def ipt_chain_exists(family, table, name):
    if family == socket.AF_INET6:
        cmd = 'ip6tables'
    elif family == socket.AF_INET:
        cmd = 'iptables'
    else:
        raise Exception('Unsupported family "%s"' % family_to_string(family))
    argv = [cmd, '-w', '-t', table, '-nL']
    try:
        output = ssubprocess.check_output(argv, env=get_env())
        for line in output.decode('ASCII', errors='replace').split('\n'):
            if line.startswith('Chain %s ' % name):
                return True
    except ssubprocess.CalledProcessError as e:
        raise Fatal('%r returned %d' % (argv, e.returncode))
    except OSError as e:
        raise Fatal('%r failed: %s' % (argv, e))
    return False


def ipt(family, table, *args):
    """Run one iptables or ip6tables command and return its exit status."""
    if family == socket.AF_INET6:
        argv = ['ip6tables', '-w', '-t', table] + list(args)
    elif family == socket.AF_INET:
        argv = ['iptables', '-w', '-t', table] + list(args)
    else:
        raise Exception('Unsupported family "%s"' % family_to_string(family))
    return _call(argv)


def ip(family, *args):
    """Run one iproute2 command and return its exit status.

    With family None, ip picks the family from the addresses given.
    """
    if family == socket.AF_INET6:
        argv = ['ip', '-6'] + list(args)
    elif family == socket.AF_INET:
        argv = ['ip', '-4'] + list(args)
    elif family is None:
        argv = ['ip'] + list(args)
    else:
        raise Exception('Unsupported family "%s"' % family_to_string(family))
    return _call(argv)
