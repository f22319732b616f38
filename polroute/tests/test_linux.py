import pytest
from mock import patch, call
from socket import AF_INET, AF_INET6

from polroute.helpers import Fatal
from polroute.linux import ip, ipt, ipt_chain_exists, nonfatal

ENV = {'PATH': '/usr/bin:/sbin', 'LC_ALL': 'C'}


@patch('polroute.linux.get_env')
@patch('polroute.linux.ssubprocess.call')
def test_ipt(mock_call, mock_get_env):
    mock_call.return_value = 0
    mock_get_env.return_value = ENV

    assert ipt(AF_INET, 'mangle', '-N', 'st_mangle_tun0_OUTPUT') == 0
    assert ipt(AF_INET6, 'nat', '-F', 'st_nat_POSTROUTING') == 0
    assert mock_call.mock_calls == [
        call(['iptables', '-w', '-t', 'mangle',
              '-N', 'st_mangle_tun0_OUTPUT'], env=ENV),
        call(['ip6tables', '-w', '-t', 'nat',
              '-F', 'st_nat_POSTROUTING'], env=ENV),
    ]


@patch('polroute.linux.get_env')
@patch('polroute.linux.ssubprocess.call')
def test_ipt_failure(mock_call, mock_get_env):
    mock_get_env.return_value = ENV
    mock_call.return_value = 1
    assert ipt(AF_INET6, 'nat', '-A', 'st_nat_POSTROUTING') == 1

    mock_call.side_effect = OSError(2, 'No such file or directory')
    assert ipt(AF_INET, 'nat', '-A', 'st_nat_POSTROUTING') == 127


@patch('polroute.linux.get_env')
@patch('polroute.linux.ssubprocess.call')
def test_ipt_bad_argument(mock_call, mock_get_env):
    mock_get_env.return_value = ENV
    mock_call.side_effect = ValueError('embedded null byte')
    assert ipt(AF_INET, 'mangle', '-d', '1.2.3.4\x00x') == 2
    assert ip(None, 'rule', 'add', 'to', '1.2.3.4\x00x') == 2


def test_ipt_unsupported_family():
    with pytest.raises(Exception) as excinfo:
        ipt(99, 'mangle', '-F')
    assert str(excinfo.value) == 'Unsupported family "99"'


@patch('polroute.linux.get_env')
@patch('polroute.linux.ssubprocess.call')
def test_ip(mock_call, mock_get_env):
    mock_call.return_value = 0
    mock_get_env.return_value = ENV

    ip(AF_INET, 'rule', 'add', 'prio', '100')
    ip(AF_INET6, 'route', 'del', 'default')
    ip(None, 'route', 'add', '10.0.0.0/8', 'dev', 'tun0')
    assert mock_call.mock_calls == [
        call(['ip', '-4', 'rule', 'add', 'prio', '100'], env=ENV),
        call(['ip', '-6', 'route', 'del', 'default'], env=ENV),
        call(['ip', 'route', 'add', '10.0.0.0/8', 'dev', 'tun0'], env=ENV),
    ]


@patch('polroute.linux.ssubprocess.check_output')
def test_ipt_chain_exists(mock_check_output):
    mock_check_output.return_value = b"""Chain PREROUTING (policy ACCEPT)
target     prot opt source               destination

Chain st_mangle_OUTPUT (1 references)
target     prot opt source               destination
"""
    assert ipt_chain_exists(AF_INET, 'mangle', 'st_mangle_OUTPUT')
    assert not ipt_chain_exists(AF_INET6, 'mangle', 'st_mangle_EXEMPT')
    assert mock_check_output.mock_calls[0][1] == (
        ['iptables', '-w', '-t', 'mangle', '-nL'],)
    assert mock_check_output.mock_calls[1][1] == (
        ['ip6tables', '-w', '-t', 'mangle', '-nL'],)


@patch('polroute.linux.ssubprocess.check_output')
def test_ipt_chain_exists_failure(mock_check_output):
    mock_check_output.side_effect = OSError(2, 'No such file or directory')
    with pytest.raises(Fatal):
        ipt_chain_exists(AF_INET, 'mangle', 'st_mangle_OUTPUT')
    assert nonfatal(ipt_chain_exists, AF_INET, 'mangle', 'x') is None
