from polroute.helpers import debug2

NETID_UNSET = 0
PID_UNSPECIFIED = 0


class BaseRegistry(object):
    """Allocates network ids and tracks which network each uid uses.

    The controller never creates network ids itself; it asks the registry
    and trusts it to keep ids unique.
    """

    def network_id_of(self, iface):
        raise NotImplementedError()

    def set_network_for_uid_range(self, uid_start, uid_end, net_id,
                                  forward_dns):
        raise NotImplementedError()

    def get_network(self, uid, net_id_hint, pid_hint, for_dns):
        raise NotImplementedError()


class UidEntry(object):
    def __init__(self, uid_start, uid_end, net_id, forward_dns):
        self.uid_start = uid_start
        self.uid_end = uid_end
        self.net_id = net_id
        self.forward_dns = forward_dns

    def matches(self, uid):
        return self.uid_start <= uid <= self.uid_end

    def __repr__(self):
        return 'UidEntry(%d-%d net=%d)' % (
            self.uid_start, self.uid_end, self.net_id)


class StaticRegistry(BaseRegistry):
    """Registry backed by a fixed interface to network id table."""

    def __init__(self, networks=None, default_net_id=NETID_UNSET):
        self.networks = dict(networks or {})
        self.default_net_id = default_net_id
        self.uid_map = []

    def network_id_of(self, iface):
        return self.networks.get(iface, NETID_UNSET)

    def is_net_id_valid(self, net_id):
        return net_id in self.networks.values()

    def set_network_for_uid_range(self, uid_start, uid_end, net_id,
                                  forward_dns):
        if uid_start > uid_end:
            return False
        if net_id == NETID_UNSET:
            for entry in self.uid_map:
                if (entry.uid_start, entry.uid_end) == (uid_start, uid_end):
                    self.uid_map.remove(entry)
                    debug2('unbound uids %d-%d from net %d'
                           % (uid_start, uid_end, entry.net_id))
                    return True
            return False
        if not self.is_net_id_valid(net_id):
            return False
        # Most recent binding wins.
        self.uid_map.insert(
            0, UidEntry(uid_start, uid_end, net_id, forward_dns))
        debug2('bound uids %d-%d to net %d' % (uid_start, uid_end, net_id))
        return True

    def get_network(self, uid, net_id_hint, pid_hint, for_dns):
        for entry in self.uid_map:
            if entry.matches(uid):
                if for_dns and not entry.forward_dns:
                    break
                return entry.net_id
        if net_id_hint != NETID_UNSET:
            return net_id_hint
        return self.default_net_id
