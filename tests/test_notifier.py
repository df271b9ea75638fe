from app.services.notifier import RealtimeNotifier


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(message)


async def test_publish_without_listeners_is_noop():
    notifier = RealtimeNotifier()

    notifier.publish("s1", "interview:started", {"sessionId": "s1"})
    await notifier.drain()

    assert notifier.listener_count("s1") == 0


async def test_publish_fans_out_to_session_listeners_only():
    notifier = RealtimeNotifier()
    mine, other = FakeSocket(), FakeSocket()
    notifier.subscribe("s1", mine)
    notifier.subscribe("s2", other)

    notifier.publish("s1", "question:next", {"order": 0})
    await notifier.drain()

    assert mine.sent == [{"event": "question:next", "data": {"order": 0}}]
    assert other.sent == []


async def test_failing_socket_is_dropped():
    notifier = RealtimeNotifier()
    good, bad = FakeSocket(), FakeSocket(fail=True)
    notifier.subscribe("s1", good)
    notifier.subscribe("s1", bad)

    notifier.publish("s1", "answer:submitted", {"timedOut": False})
    await notifier.drain()

    assert len(good.sent) == 1
    assert notifier.listener_count("s1") == 1


def test_publish_outside_event_loop_does_not_raise():
    notifier = RealtimeNotifier()
    notifier.subscribe("s1", FakeSocket())

    notifier.publish("s1", "interview:graded", {"results": []})


def test_unsubscribe_last_listener_forgets_session():
    notifier = RealtimeNotifier()
    socket = FakeSocket()
    notifier.subscribe("s1", socket)

    notifier.unsubscribe("s1", socket)
    notifier.unsubscribe("s1", socket)

    assert notifier.listener_count("s1") == 0
