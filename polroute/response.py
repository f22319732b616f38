import os
from polroute.helpers import debug2


class ResponseCode(object):
    CommandOkay = 200
    GetMarkResult = 225
    OperationFailed = 400
    CommandSyntaxError = 500
    CommandParameterError = 501


class Responder(object):
    """Writes one status line per reply to the controlling process."""

    def __init__(self, stream):
        self.stream = stream
        self.errno = 0

    def send_msg(self, code, msg, use_errno=False):
        if use_errno and self.errno:
            msg = '%s (%s)' % (msg, os.strerror(self.errno))
        line = '%d %s\n' % (code, msg)
        debug2('> %s' % line.rstrip('\n'))
        self.stream.write(line.encode('ASCII', errors='backslashreplace'))
        self.stream.flush()
