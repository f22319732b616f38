import pytest
import polroute.options
from argparse import ArgumentTypeError as Fatal


def test_parse_network():
    assert polroute.options.parse_network('tun0=5') == ('tun0', 5)
    assert polroute.options.parse_network(' rmnet_data0=101 ') \
        == ('rmnet_data0', 101)
    with pytest.raises(Fatal) as excinfo:
        polroute.options.parse_network('tun0')
    assert str(excinfo.value) == "'tun0' is not a valid IFACE=NETID pair"
    with pytest.raises(Fatal) as excinfo:
        polroute.options.parse_network('tun0=0')
    assert str(excinfo.value) == 'network id of tun0 must not be 0'
    with pytest.raises(Fatal):
        polroute.options.parse_network('averyveryverylongname=3')


def test_parse_table():
    assert polroute.options.parse_table('60') == 60
    with pytest.raises(Fatal) as excinfo:
        polroute.options.parse_table('254')
    assert str(excinfo.value) == 'base table 254 is not between 1 and 252'
    with pytest.raises(Fatal):
        polroute.options.parse_table('main')


def test_parse_net_id():
    assert polroute.options.parse_net_id('7') == 7
    with pytest.raises(Fatal):
        polroute.options.parse_net_id('-1')


def test_parser_defaults():
    opt = polroute.options.parser.parse_args([])
    assert opt.networks == []
    assert opt.default_network == 0
    assert opt.base_table == 60
    assert opt.vpn_user == 'vpn'
    assert opt.hooks
    assert opt.verbose == 0
    assert not opt.syslog


def test_parser():
    opt = polroute.options.parser.parse_args(
        ['-n', 'tun0=5', '--network', 'wlan0=7', '--base-table', '100',
         '--default-network', '7', '--no-hooks', '-vv'])
    assert opt.networks == [('tun0', 5), ('wlan0', 7)]
    assert opt.base_table == 100
    assert opt.default_network == 7
    assert not opt.hooks
    assert opt.verbose == 2


def test_argument_file(tmpdir):
    args = tmpdir.join("args")
    args.write("# networks\n"
               "--network\n"
               "'tun0=5'\n"
               "\n"
               "--vpn-user\n"
               "  \"legacyvpn\"  \n")
    opt = polroute.options.parser.parse_args(['@%s' % args])
    assert opt.networks == [('tun0', 5)]
    assert opt.vpn_user == 'legacyvpn'
