import pytest


class ManualHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Collects deferred callbacks; tests decide when they fire."""

    def __init__(self):
        self.handles = []

    def __call__(self, delay, callback):
        handle = ManualHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def run_pending(self):
        handles, self.handles = self.pending, []
        for handle in handles:
            handle.callback()
        return len(handles)


class LastChoice:
    """Random source that always takes the last candidate."""

    def choice(self, seq):
        return seq[-1]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def last_choice():
    return LastChoice()
