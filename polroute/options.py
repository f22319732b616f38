import re
from argparse import ArgumentParser, ArgumentTypeError as Fatal

from polroute import __version__
from polroute.registry import NETID_UNSET
from polroute.tables import BASE_TABLE_NUMBER


# tun0=5 or rmnet_data0=101
def parse_network(s):
    m = re.match(r'([\w.:@-]{1,15})=(\d+)$', str(s).strip())
    if not m:
        raise Fatal('%r is not a valid IFACE=NETID pair' % s)
    iface, net_id = m.groups()
    net_id = int(net_id)
    if net_id == NETID_UNSET:
        raise Fatal('network id of %s must not be %d' % (iface, NETID_UNSET))
    return (iface, net_id)


def parse_net_id(s):
    try:
        net_id = int(s)
    except ValueError:
        raise Fatal('%r is not a valid network id' % s)
    if net_id < 0:
        raise Fatal('network id %d is negative' % net_id)
    return net_id


def parse_table(s):
    try:
        base = int(s)
    except ValueError:
        raise Fatal('%r is not a valid table number' % s)
    # 253-255 are the kernel's default, main and local tables.
    if not 0 < base < 253:
        raise Fatal('base table %d is not between 1 and 252' % base)
    return base


# Override one function in the ArgumentParser so that we can have
# better control for how we parse files containing arguments. We
# expect one argument per line, but strip whitespace/quotes from the
# beginning/end of the lines.
class MyArgumentParser(ArgumentParser):
    def convert_arg_line_to_args(self, arg_line):
        # Ignore comments
        if arg_line.startswith("#"):
            return []

        arg_line = arg_line.strip()
        if not arg_line:
            return []

        # Quotes copied over from a shell command line are dropped if the
        # line starts and ends with the same one.
        if arg_line.startswith("'") and arg_line.endswith("'") or \
           arg_line.startswith('"') and arg_line.endswith('"'):
            arg_line = arg_line[1:-1]

        return [arg_line]


parser = MyArgumentParser(
    prog="polroute",
    usage="%(prog)s [-n IFACE=NETID]... [options]",
    description="""
    Read routing commands on stdin, one per line, and apply them to
    per-network policy routing tables.
    """,
    fromfile_prefix_chars="@"
)
parser.add_argument(
    "-n", "--network",
    metavar="IFACE=NETID",
    action="append",
    dest="networks",
    default=[],
    type=parse_network,
    help="""
    route interface IFACE as network NETID (can be used more than once)
    """
)
parser.add_argument(
    "--default-network",
    metavar="NETID",
    type=parse_net_id,
    default=NETID_UNSET,
    help="""
    network of uids that are not bound to any network [%(default)s]
    """
)
parser.add_argument(
    "--base-table",
    metavar="N",
    type=parse_table,
    default=BASE_TABLE_NUMBER,
    help="""
    network NETID uses routing table and fwmark NETID+N [%(default)s]
    """
)
parser.add_argument(
    "--vpn-user",
    metavar="USER",
    default="vpn",
    help="""
    user whose traffic is never redirected into a network [%(default)s]
    """
)
parser.add_argument(
    "--no-hooks",
    action="store_false",
    dest="hooks",
    help="""
    do not create, flush or remove the base chains at start and exit
    """
)
parser.add_argument(
    "-v", "--verbose",
    action="count",
    default=0,
    help="""
    increase debug message verbosity (can be used more than once)
    """
)
parser.add_argument(
    "-V", "--version",
    action="version",
    version=__version__,
    help="""
    print the %(prog)s version number and exit
    """
)
parser.add_argument(
    "--syslog",
    action="store_true",
    help="""
    send log messages to syslog
    """
)
