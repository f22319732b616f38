import errno
from polroute.helpers import log, debug1, debug2, TableError
from polroute.linux import ipt_chain_exists, nonfatal
from polroute.registry import NETID_UNSET, PID_UNSPECIFIED
from polroute.response import ResponseCode
from polroute.sequencer import Sequencer, Status, V4, V6, V4V6, target_for
from polroute.tables import BASE_TABLE_NUMBER, RuleCounts, table_index

LOCAL_MANGLE_OUTPUT = 'st_mangle_OUTPUT'
LOCAL_MANGLE_EXEMPT = 'st_mangle_EXEMPT'
LOCAL_MANGLE_IFACE_FORMAT = 'st_mangle_%s_OUTPUT'
LOCAL_NAT_POSTROUTING = 'st_nat_POSTROUTING'
LOCAL_FILTER_OUTPUT = 'st_filter_OUTPUT'

# (table, our chain, built-in chain it is hooked into). The exempt chain
# comes first so the protect mark is set before st_mangle_OUTPUT looks.
HOOKS = [
    ('mangle', LOCAL_MANGLE_EXEMPT, 'OUTPUT'),
    ('mangle', LOCAL_MANGLE_OUTPUT, 'OUTPUT'),
    ('nat', LOCAL_NAT_POSTROUTING, 'POSTROUTING'),
    ('filter', LOCAL_FILTER_OUTPUT, 'OUTPUT'),
]

PROTECT_MARK = 0x1
EXEMPT_PRIO = '99'
RULE_PRIO = '100'
# after the protect mark and vpn RETURN rules, ahead of any uid rule
FWMARK_POSITION = '3'

ADD = 'add'
DEL = 'del'


def iface_chain(iface):
    return LOCAL_MANGLE_IFACE_FORMAT % iface


class TableController(object):
    """Routes marked traffic of each network through its own table.

    Every network gets table ``net_id + base``, and the same number is used
    as the fwmark that selects it. Traffic gets marked either because its
    owner uid is bound to the network, because its destination was added
    with set_fwmark_route(), or because the socket was marked by its owner.
    Hosts added with set_host_exemption() get the protect mark instead and
    always use the main table.

    None of the multi-step operations roll back on failure.
    """

    def __init__(self, registry, base_table=BASE_TABLE_NUMBER,
                 vpn_user='vpn', sequencer=None):
        self.registry = registry
        self.base_table = base_table
        self.vpn_user = vpn_user
        self.seq = sequencer or Sequencer()
        self.counts = RuleCounts()
        self.lock = self.counts.lock
        # interface -> net id, for every live per-interface mark chain
        self.fwmark_chains = {}

    def table_index(self, net_id):
        return table_index(net_id, self.base_table)

    def setup_iptables_hooks(self):
        with self.lock:
            status = Status()
            for table, chain, builtin in HOOKS:
                for family in V4V6:
                    target = (family,)
                    exists = nonfatal(ipt_chain_exists, family, table, chain)
                    if exists is None:
                        # no such table for this family, e.g. ip6tables nat
                        status.add(family, 1)
                        continue
                    if not exists:
                        status |= self.seq.iptables(target, table,
                                                    '-N', chain)
                    if self.seq.iptables(target, table,
                                         '-C', builtin, '-j', chain).rv:
                        status |= self.seq.iptables(target, table,
                                                    '-A', builtin,
                                                    '-j', chain)

            status |= self.seq.iptables(V4V6, 'mangle',
                                        '-F', LOCAL_MANGLE_OUTPUT)
            status |= self.seq.iptables(V4V6, 'mangle',
                                        '-F', LOCAL_MANGLE_EXEMPT)
            # skip anything marked with the protect mark
            status |= self.seq.iptables(V4V6, 'mangle',
                                        '-A', LOCAL_MANGLE_OUTPUT,
                                        '-m', 'mark',
                                        '--mark', str(PROTECT_MARK),
                                        '-j', 'RETURN')
            # keep the legacy vpn daemon's own traffic off its tunnel
            status |= self.seq.iptables(V4V6, 'mangle',
                                        '-A', LOCAL_MANGLE_OUTPUT,
                                        '-m', 'owner',
                                        '--uid-owner', self.vpn_user,
                                        '-j', 'RETURN')
            if status.rv:
                log('error: hook setup incomplete: %r' % status)
            return status.rv

    def restore_iptables_hooks(self):
        with self.lock:
            # Drops uid gotos too, so the interface chains can be deleted.
            self.seq.iptables(V4V6, 'mangle', '-F', LOCAL_MANGLE_OUTPUT)
            for iface in reversed(list(self.fwmark_chains)):
                if self.set_fwmark_rule(iface, False):
                    log('error: could not remove fwmark rules for %s'
                        % iface)
                    self.fwmark_chains.pop(iface, None)

            for table, chain, builtin in reversed(HOOKS):
                for family in V4V6:
                    if not nonfatal(ipt_chain_exists, family, table, chain):
                        continue
                    target = (family,)
                    self.seq.iptables(target, table,
                                      '-D', builtin, '-j', chain)
                    self.seq.iptables(target, table, '-F', chain)
                    self.seq.iptables(target, table, '-X', chain)

    def add_route(self, cli, iface, dest, prefix, gateway):
        return self.modify_route(cli, ADD, iface, dest, prefix, gateway,
                                 self.registry.network_id_of(iface))

    def remove_route(self, cli, iface, dest, prefix, gateway):
        return self.modify_route(cli, DEL, iface, dest, prefix, gateway,
                                 self.registry.network_id_of(iface))

    def modify_route(self, cli, action, iface, dest, prefix, gateway,
                     net_id):
        dest_str = '%s/%d' % (dest, prefix)
        table = self.table_index(net_id)

        with self.lock:
            # ip rejects "::" as a gateway, where it accepts 0.0.0.0.
            if gateway == '::':
                rv = self.seq.ip(None, 'route', action, dest_str,
                                 'dev', iface, 'table', str(table)).rv
            else:
                rv = self.seq.ip(None, 'route', action, dest_str,
                                 'via', gateway, 'dev', iface,
                                 'table', str(table)).rv

            if rv:
                log('ip route %s failed: route %s via %s dev %s table %d'
                    % (action, dest_str, gateway, iface, table))
                cli.errno = errno.ENODEV
                cli.send_msg(ResponseCode.OperationFailed,
                             'ip route modification failed', True)
                return -1

            self.counts.modify(net_id, action)
        cli.send_msg(ResponseCode.CommandOkay, 'Route modified', False)
        return 0

    def add_from_rule(self, iface, addr):
        return self.modify_from_rule(self.registry.network_id_of(iface),
                                     ADD, addr)

    def remove_from_rule(self, iface, addr):
        return self.modify_from_rule(self.registry.network_id_of(iface),
                                     DEL, addr)

    def modify_from_rule(self, net_id, action, addr):
        with self.lock:
            if self.seq.ip(target_for(addr), 'rule', action, 'from', addr,
                           'table', str(self.table_index(net_id))).rv:
                return -1
            self.counts.modify(net_id, action)
            return 0

    def add_local_route(self, iface, addr):
        return self.modify_local_route(self.registry.network_id_of(iface),
                                       ADD, iface, addr)

    def remove_local_route(self, iface, addr):
        return self.modify_local_route(self.registry.network_id_of(iface),
                                       DEL, iface, addr)

    def modify_local_route(self, net_id, action, iface, addr):
        with self.lock:
            # Counted before trying: some deletes fail because the
            # interface is already gone.
            self.counts.modify(net_id, action)
            return self.seq.ip(None, 'route', action, addr, 'dev', iface,
                               'table', str(self.table_index(net_id))).rv

    def add_fwmark_rule(self, iface):
        return self.set_fwmark_rule(iface, True)

    def remove_fwmark_rule(self, iface):
        return self.set_fwmark_rule(iface, False)

    def set_fwmark_rule(self, iface, add):
        with self.lock:
            net_id = self.registry.network_id_of(iface)
            if add and net_id in self.counts:
                raise TableError(errno.EBUSY,
                                 'network %d (%s) already has active rules'
                                 % (net_id, iface))
            debug1('%s fwmark rules for %s (net %d)'
                   % ('adding' if add else 'removing', iface, net_id))

            action = ADD if add else DEL
            flag = '-A' if add else '-D'
            mark = str(self.table_index(net_id))
            chain = iface_chain(iface)

            def _ipm(*args):
                return self.seq.iptables(V4V6, 'mangle', *args)

            # Catch-all route into the table; the fwmark rule decides which
            # packets ever get to see it.
            for target in (V4, V6):
                self.seq.ip(target, 'route', action, 'default',
                            'dev', iface, 'table', mark)
                rv = self.seq.ip(target, 'rule', action, 'prio', RULE_PRIO,
                                 'fwmark', mark, 'table', mark).rv
                if rv:
                    return rv

            if add:
                status = _ipm('-N', chain)
                # premarked packets go to the interface chain, ahead of
                # the uid rules
                status |= _ipm('-I', LOCAL_MANGLE_OUTPUT, FWMARK_POSITION,
                               '-m', 'mark', '--mark', mark, '-g', chain)
                # Sockets marked by their owner carry the mark already, but
                # unless a destination in the chain matches they should use
                # the default network.
                status |= _ipm('-A', chain, '-j', 'MARK', '--set-mark', '0')
            else:
                status = _ipm('-D', LOCAL_MANGLE_OUTPUT,
                              '-m', 'mark', '--mark', mark, '-g', chain)
                status |= _ipm('-F', chain)
                status |= _ipm('-X', chain)
            if status.rv:
                debug1('mark chain %s not fully updated: %r'
                       % (chain, status))

            rv = self.seq.iptables(V4, 'nat', flag, LOCAL_NAT_POSTROUTING,
                                   '-o', iface, '-m', 'mark', '--mark', mark,
                                   '-j', 'MASQUERADE').rv
            if rv:
                return rv

            # IPv6 NAT needs Linux 3.7, so this may well fail.
            rv = self.seq.iptables(V6, 'nat', flag, LOCAL_NAT_POSTROUTING,
                                   '-o', iface, '-m', 'mark', '--mark', mark,
                                   '-j', 'MASQUERADE').rv
            if rv:
                debug2('no IPv6 NAT, rejecting marked IPv6 for %s' % iface)
                rv = self.seq.iptables(V6, 'filter', flag, LOCAL_FILTER_OUTPUT,
                                       '-m', 'mark', '--mark', mark,
                                       '-j', 'REJECT').rv

            if not rv:
                if add:
                    self.counts.increment(net_id)
                    self.fwmark_chains[iface] = net_id
                else:
                    self.counts.decrement(net_id)
                    self.fwmark_chains.pop(iface, None)
            return rv

    def add_fwmark_route(self, iface, dest, prefix):
        return self.set_fwmark_route(iface, dest, prefix, True)

    def remove_fwmark_route(self, iface, dest, prefix):
        return self.set_fwmark_route(iface, dest, prefix, False)

    def set_fwmark_route(self, iface, dest, prefix, add):
        with self.lock:
            net_id = self.registry.network_id_of(iface)
            mark = str(self.table_index(net_id))
            return self.seq.iptables(target_for(dest), 'mangle',
                                     '-A' if add else '-D', iface_chain(iface),
                                     '-d', '%s/%d' % (dest, prefix),
                                     '-j', 'MARK', '--set-mark', mark).rv

    def add_uid_rule(self, iface, uid_start, uid_end):
        return self.set_uid_rule(iface, uid_start, uid_end, True)

    def remove_uid_rule(self, iface, uid_start, uid_end):
        return self.set_uid_rule(iface, uid_start, uid_end, False)

    def set_uid_rule(self, iface, uid_start, uid_end, add):
        with self.lock:
            net_id = self.registry.network_id_of(iface)
            if not self.registry.set_network_for_uid_range(
                    uid_start, uid_end, net_id if add else NETID_UNSET,
                    False):
                raise TableError(errno.EINVAL,
                                 'cannot %s uids %d-%d %s network %d'
                                 % ('bind' if add else 'unbind',
                                    uid_start, uid_end,
                                    'to' if add else 'from', net_id))
            return self.seq.iptables(V4V6, 'mangle', '-A' if add else '-D',
                                     LOCAL_MANGLE_OUTPUT,
                                     '-m', 'owner', '--uid-owner',
                                     '%d-%d' % (uid_start, uid_end),
                                     '-g', iface_chain(iface)).rv

    def add_host_exemption(self, host):
        return self.set_host_exemption(host, True)

    def remove_host_exemption(self, host):
        return self.set_host_exemption(host, False)

    def set_host_exemption(self, host, add):
        target = target_for(host)
        with self.lock:
            status = self.seq.iptables(target, 'mangle',
                                       '-A' if add else '-D',
                                       LOCAL_MANGLE_EXEMPT, '-d', host,
                                       '-j', 'MARK',
                                       '--set-mark', str(PROTECT_MARK))
            status |= self.seq.ip(target, 'rule', ADD if add else DEL,
                                  'prio', EXEMPT_PRIO, 'to', host,
                                  'table', 'main')
            if status.rv:
                debug1('exemption for %s: %r' % (host, status))
            return status.rv

    def get_uid_mark(self, uid):
        net_id = self.registry.get_network(uid, NETID_UNSET,
                                           PID_UNSPECIFIED, False)
        return str(self.table_index(net_id))

    def get_protect_mark(self):
        return str(PROTECT_MARK)
