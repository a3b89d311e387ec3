import asyncio

from silhouette.controller import KeyPress


class RecordingSurface:
    def __init__(self):
        self.calls = []

    def show_probe(self, stimulus_ref, labels):
        self.calls.append(("show_probe", stimulus_ref, dict(labels)))

    def mark_response(self, relation, is_correct):
        self.calls.append(("mark_response", relation, is_correct))

    def clear(self):
        self.calls.append(("clear",))

    def show_preview(self, stimulus_ref):
        self.calls.append(("show_preview", stimulus_ref))

    def show_notice(self, text):
        self.calls.append(("show_notice", text))

    def names(self):
        return [call[0] for call in self.calls]


class FakeKeyboard:
    def __init__(self):
        self.queue = asyncio.Queue()
        self.quit_event = asyncio.Event()

    @property
    def quit_requested(self):
        return self.quit_event.is_set()


def press_later(queue, delay_ms, token):
    """Put a key press on the queue delay_ms from now, stamped with loop time."""
    loop = asyncio.get_running_loop()

    def _put():
        queue.put_nowait(KeyPress(token=token, timestamp=loop.time()))

    return loop.call_later(delay_ms / 1000, _put)
