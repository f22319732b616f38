import threading
from polroute.helpers import debug3

BASE_TABLE_NUMBER = 60


def table_index(net_id, base=BASE_TABLE_NUMBER):
    """Secondary routing table (and fwmark value) of a network."""
    return net_id + base


class RuleCounts(object):
    """Number of active rules per network id.

    A network is only present while it has at least one rule, so
    ``net_id in counts`` means "something is routed through its table".
    """

    def __init__(self):
        self._counts = {}
        self.lock = threading.RLock()

    def increment(self, net_id):
        with self.lock:
            self._counts[net_id] = self._counts.get(net_id, 0) + 1
            debug3('rule count for net %d is now %d'
                   % (net_id, self._counts[net_id]))

    def decrement(self, net_id):
        with self.lock:
            if net_id not in self._counts:
                return
            self._counts[net_id] -= 1
            if self._counts[net_id] < 1:
                del self._counts[net_id]
                debug3('net %d has no rules left' % net_id)

    def modify(self, net_id, action):
        if action == 'add':
            self.increment(net_id)
        else:
            self.decrement(net_id)

    def count(self, net_id):
        with self.lock:
            return self._counts.get(net_id, 0)

    def __contains__(self, net_id):
        return self.count(net_id) > 0

    def __len__(self):
        with self.lock:
            return len(self._counts)
