from school_delay.cache import StatusCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_entry_expires_by_age():
    clock = FakeClock()
    cache = StatusCache(ttl=300, clock=clock)

    assert cache.get() is None
    cache.set({"IASD": "open"})

    clock.now += 299
    assert cache.get() == {"IASD": "open"}
    assert cache.age() == 299

    clock.now += 1
    assert cache.get() is None


def test_set_replaces_entry_and_resets_age():
    clock = FakeClock()
    cache = StatusCache(ttl=60, clock=clock)
    cache.set("first")

    clock.now += 50
    cache.set("second")
    clock.now += 50

    assert cache.get() == "second"


def test_clear():
    cache = StatusCache(ttl=60, clock=FakeClock())
    cache.set("value")
    cache.clear()

    assert cache.get() is None
    assert cache.age() is None
