"""
Progress reporting.

Each stage accepts an optional ``progress`` callable which receives
:class:`ProgressEvent` records.  ``verbose=True`` subscribes a printer that
writes the familiar console banners; the algorithms never depend on
whether anyone is listening.
"""

from collections import namedtuple

ProgressEvent = namedtuple('ProgressEvent', ['stage', 'message', 'data'])
ProgressEvent.__doc__ = """\
A single progress notification.

stage : str
    ``'search'``, ``'stability'`` or ``'plausible'``.
message : str
    Human-readable line.
data : dict
    Machine-readable details (depth, counts, AIC values, ...).
"""


def print_event(event):
    print(event.message)


class Reporter:
    """Fan a stage's events out to a callback and/or stdout."""

    def __init__(self, stage, progress=None, verbose=False):
        self.stage = stage
        self._sinks = []
        if progress is not None:
            self._sinks.append(progress)
        if verbose:
            self._sinks.append(print_event)

    def emit(self, message, **data):
        if not self._sinks:
            return
        event = ProgressEvent(self.stage, message, data)
        for sink in self._sinks:
            sink(event)
