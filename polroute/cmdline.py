import os
import shlex
import sys
import polroute.helpers as helpers
import polroute.daemon as daemon
import polroute.ssyslog as ssyslog
from polroute.controller import TableController
from polroute.options import parser
from polroute.registry import StaticRegistry
from polroute.helpers import log, Fatal

REQUIRED_PROGRAMS = ('ip', 'iptables', 'ip6tables')


def main():
    if 'POLROUTE_ARGS' in os.environ:
        env_args = shlex.split(os.environ['POLROUTE_ARGS'])
    else:
        env_args = []
    args = [*env_args, *sys.argv[1:]]

    opt = parser.parse_args(args)
    helpers.verbose = opt.verbose

    networks = dict(opt.networks)
    if len(set(networks.values())) != len(networks):
        parser.error('each interface needs its own network id')
    if opt.default_network and opt.default_network not in networks.values():
        parser.error('--default-network %d is not the id of any --network'
                     % opt.default_network)

    try:
        if opt.syslog:
            ssyslog.start_syslog()
            ssyslog.stderr_to_syslog()

        for prog in REQUIRED_PROGRAMS:
            if not helpers.which(prog):
                raise Fatal("'%s' is missing. Check that it is installed "
                            "and in your PATH." % prog)

        registry = StaticRegistry(networks, opt.default_network)
        controller = TableController(registry,
                                     base_table=opt.base_table,
                                     vpn_user=opt.vpn_user)
        for iface, net_id in sorted(networks.items()):
            helpers.debug1('%s is network %d (table %d)'
                           % (iface, net_id, controller.table_index(net_id)))
        return daemon.main(controller, sys.stdin.buffer, sys.stdout.buffer,
                           hooks=opt.hooks)

    except Fatal as e:
        log('fatal: %s' % e)
        return 99
    except KeyboardInterrupt:
        log('\n')
        log('Keyboard interrupt: exiting.')
        return 1
