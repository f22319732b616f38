import platform

from polroute.helpers import log, debug1, debug2, debug3, TableError
from polroute.response import Responder, ResponseCode


class CommandError(Exception):
    def __init__(self, code, message):
        super(CommandError, self).__init__(message)
        self.code = code


def _action(word):
    if word == 'add':
        return True
    elif word == 'remove':
        return False
    raise CommandError(ResponseCode.CommandSyntaxError,
                       'Unknown action %r' % word)


def _int(word, what):
    try:
        return int(word)
    except ValueError:
        raise CommandError(ResponseCode.CommandParameterError,
                           'Invalid %s %r' % (what, word))


def _nargs(words, n, usage):
    if len(words) != n:
        raise CommandError(ResponseCode.CommandParameterError,
                           'Usage: %s' % usage)


class CommandHandler(object):
    """Parses one command line and answers it on the responder."""

    def __init__(self, controller, cli):
        self.controller = controller
        self.cli = cli

    def reply(self, rv, what):
        if rv:
            self.cli.send_msg(ResponseCode.OperationFailed,
                              '%s failed' % what)
        else:
            self.cli.send_msg(ResponseCode.CommandOkay,
                              '%s succeeded' % what)

    def handle(self, line):
        words = line.split()
        debug2('< %s' % line)
        try:
            if any(c < ' ' and c != '\t' or c == '\x7f' for c in line):
                raise CommandError(ResponseCode.CommandParameterError,
                                   'Control character in command')
            elif not words:
                raise CommandError(ResponseCode.CommandSyntaxError,
                                   'Missing command')
            elif words[0] == 'route':
                self.do_route(words)
            elif words[0] == 'rule':
                self.do_rule(words)
            elif words[0] == 'fwmark':
                self.do_fwmark(words)
            else:
                raise CommandError(ResponseCode.CommandSyntaxError,
                                   'Unknown command')
        except CommandError as e:
            self.cli.send_msg(e.code, str(e))
        except TableError as e:
            self.cli.errno = e.errno
            self.cli.send_msg(ResponseCode.OperationFailed, str(e), True)

    def do_route(self, words):
        ctl = self.controller
        if len(words) > 1 and words[1] == 'local':
            _nargs(words, 5, 'route local add|remove IFACE ADDR')
            add = _action(words[2])
            if add:
                rv = ctl.add_local_route(words[3], words[4])
            else:
                rv = ctl.remove_local_route(words[3], words[4])
            return self.reply(rv, 'local route')

        _nargs(words, 6, 'route add|remove IFACE DEST PREFIX GATEWAY')
        add = _action(words[1])
        prefix = _int(words[4], 'prefix length')
        if add:
            ctl.add_route(self.cli, words[2], words[3], prefix, words[5])
        else:
            ctl.remove_route(self.cli, words[2], words[3], prefix, words[5])

    def do_rule(self, words):
        _nargs(words, 5, 'rule from add|remove IFACE ADDR')
        if words[1] != 'from':
            raise CommandError(ResponseCode.CommandSyntaxError,
                               'Unknown rule type %r' % words[1])
        if _action(words[2]):
            rv = self.controller.add_from_rule(words[3], words[4])
        else:
            rv = self.controller.remove_from_rule(words[3], words[4])
        self.reply(rv, 'source rule')

    def do_fwmark(self, words):
        ctl = self.controller
        if len(words) < 2:
            raise CommandError(ResponseCode.CommandSyntaxError,
                               'Missing fwmark subcommand')
        sub = words[1]
        if sub == 'get':
            if words[2:3] == ['protect']:
                _nargs(words, 3, 'fwmark get protect')
                mark = ctl.get_protect_mark()
            else:
                _nargs(words, 4, 'fwmark get protect|mark UID')
                if words[2] != 'mark':
                    raise CommandError(ResponseCode.CommandSyntaxError,
                                       'Unknown mark %r' % words[2])
                mark = ctl.get_uid_mark(_int(words[3], 'uid'))
            self.cli.send_msg(ResponseCode.GetMarkResult, mark)
        elif sub == 'rule':
            _nargs(words, 4, 'fwmark rule add|remove IFACE')
            rv = ctl.set_fwmark_rule(words[3], _action(words[2]))
            self.reply(rv, 'fwmark rule')
        elif sub == 'route':
            _nargs(words, 6, 'fwmark route add|remove IFACE DEST PREFIX')
            add = _action(words[2])
            rv = ctl.set_fwmark_route(words[3], words[4],
                                      _int(words[5], 'prefix length'), add)
            self.reply(rv, 'fwmark route')
        elif sub == 'uid':
            _nargs(words, 6, 'fwmark uid add|remove IFACE UID_START UID_END')
            add = _action(words[2])
            rv = ctl.set_uid_rule(words[3], _int(words[4], 'uid'),
                                  _int(words[5], 'uid'), add)
            self.reply(rv, 'uid rule')
        elif sub == 'exempt':
            _nargs(words, 4, 'fwmark exempt add|remove HOST')
            rv = ctl.set_host_exemption(words[3], _action(words[2]))
            self.reply(rv, 'host exemption')
        else:
            raise CommandError(ResponseCode.CommandSyntaxError,
                               'Unknown fwmark subcommand %r' % sub)


def main(controller, stdin, stdout, hooks=True):
    cli = Responder(stdout)
    handler = CommandHandler(controller, cli)
    debug1('Starting controller with Python version %s'
           % platform.python_version())

    def _read_next_string_line():
        try:
            line = stdin.readline()
            if not line:
                return  # parent probably exited
            return line.decode('ASCII', errors='replace').strip()
        except IOError as e:
            debug3('read from stdin failed: %s' % (e,))
            return

    try:
        if hooks:
            debug1('setting up base chains.')
            if controller.setup_iptables_hooks():
                log('warning: base chains are incomplete, continuing.')

        stdout.write(b'READY\n')
        stdout.flush()

        while 1:
            line = _read_next_string_line()
            if line is None:
                break
            if line:
                handler.handle(line)
    finally:
        if hooks:
            debug1('undoing changes.')
            try:
                controller.restore_iptables_hooks()
            except Exception as e:
                log('error: could not remove base chains: %s' % e)
    return 0
