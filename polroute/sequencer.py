import socket
from polroute.helpers import debug2, family_to_string
from polroute.linux import ipt, ip

V4 = (socket.AF_INET,)
V6 = (socket.AF_INET6,)
V4V6 = (socket.AF_INET, socket.AF_INET6)


def target_for(addr):
    """The protocol target for a textual address."""
    if ':' in addr:
        return V6
    else:
        return V4


class Status(object):
    """Exit statuses of one logical step, one entry per family.

    ``rv`` keeps the historical contract of OR-ing every exit status
    together; ``results`` and ``failed()`` still say which family failed.
    """

    def __init__(self, results=None):
        self.results = list(results or [])

    def add(self, family, rv):
        self.results.append((family, rv))

    @property
    def rv(self):
        rv = 0
        for _, r in self.results:
            rv |= r
        return rv

    def failed(self):
        return [family for family, r in self.results if r]

    def __or__(self, other):
        return Status(self.results + other.results)

    def __repr__(self):
        return 'Status(%s)' % ', '.join(
            '%s=%d' % (family_to_string(f) if f else 'any', r)
            for f, r in self.results)


class Sequencer(object):
    """Runs configuration commands for every family of a target, in order.

    Each invocation is waited for before the next one starts. There are no
    retries: a failure is only ever reported, never repeated.
    """

    def iptables(self, target, table, *args):
        status = Status()
        for family in target:
            status.add(family, ipt(family, table, *args))
        if status.failed():
            debug2('iptables %s failed for %s' % (
                ' '.join(args),
                ', '.join(family_to_string(f) for f in status.failed())))
        return status

    def ip(self, target, *args):
        status = Status()
        if target is None:
            status.add(None, ip(None, *args))
            return status
        for family in target:
            status.add(family, ip(family, *args))
        return status
