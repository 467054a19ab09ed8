"""
Test the in-process notification router.
"""
from concurrent.futures import ThreadPoolExecutor

from sportsmeet.realtime.router import BufferedConnection, NotificationRouter

PAYLOAD = {"title": "Sunday Cricket", "message": "Match moved to 10am"}


class TestSubscriptions:
    def test_publish_reaches_only_subscribed_events(self):
        router = NotificationRouter()
        connection = BufferedConnection("c1")
        router.subscribe(connection, [1, 2])

        assert router.publish(1, PAYLOAD) == 1
        assert router.publish(2, PAYLOAD) == 1
        assert router.publish(3, PAYLOAD) == 0
        assert connection.drain() == [PAYLOAD, PAYLOAD]

    def test_subscribe_replaces_previous_set(self):
        router = NotificationRouter()
        connection = BufferedConnection("c1")
        router.subscribe(connection, [1, 2])
        router.subscribe(connection, [2, 3])

        assert router.subscriptions("c1") == frozenset({"2", "3"})
        assert router.subscribers(1) == frozenset()
        router.publish(1, PAYLOAD)
        assert connection.drain() == []

    def test_subscribe_is_idempotent(self):
        router = NotificationRouter()
        connection = BufferedConnection("c1")
        router.subscribe(connection, [5, 6])
        router.subscribe(connection, [5, 6])

        assert router.subscribers(5) == frozenset({"c1"})
        assert router.publish(5, PAYLOAD) == 1

    def test_ids_are_canonicalized(self):
        router = NotificationRouter()
        connection = BufferedConnection("c1")
        router.subscribe(connection, ["7"])

        assert router.publish(7, PAYLOAD) == 1

    def test_subscribe_to_nothing(self):
        router = NotificationRouter()
        connection = BufferedConnection("c1")
        router.subscribe(connection, [])

        assert router.is_connected("c1")
        assert router.subscriptions("c1") == frozenset()

    def test_fan_out_to_multiple_connections(self):
        router = NotificationRouter()
        a, b, c = BufferedConnection("a"), BufferedConnection("b"), BufferedConnection("c")
        router.subscribe(a, [1])
        router.subscribe(b, [1, 2])
        router.subscribe(c, [2])

        assert router.publish(1, PAYLOAD) == 2
        assert len(a.drain()) == 1
        assert len(b.drain()) == 1
        assert c.drain() == []


class TestDisconnect:
    def test_no_delivery_after_disconnect(self):
        router = NotificationRouter()
        connection = BufferedConnection("c1")
        router.subscribe(connection, [1, 2])
        router.disconnect("c1")

        assert router.publish(1, PAYLOAD) == 0
        assert connection.drain() == []
        assert connection.closed
        assert not router.is_connected("c1")

    def test_disconnect_leaves_other_connections_alone(self):
        router = NotificationRouter()
        a, b = BufferedConnection("a"), BufferedConnection("b")
        router.subscribe(a, [1])
        router.subscribe(b, [1])
        router.disconnect("a")

        assert router.publish(1, PAYLOAD) == 1
        assert b.drain() == [PAYLOAD]

    def test_disconnect_unknown_connection_is_noop(self):
        NotificationRouter().disconnect("nobody")

    def test_full_buffer_drops_connection(self):
        router = NotificationRouter()
        slow = BufferedConnection("slow", max_pending=2)
        fast = BufferedConnection("fast", max_pending=10)
        router.subscribe(slow, [1])
        router.subscribe(fast, [1])

        for _ in range(3):
            router.publish(1, PAYLOAD)

        assert not router.is_connected("slow")
        assert router.is_connected("fast")
        assert len(slow.drain()) == 2
        assert len(fast.drain()) == 3

    def test_reconnect_with_same_id_replaces_stale_connection(self):
        router = NotificationRouter()
        old = BufferedConnection("c1")
        router.subscribe(old, [1])
        new = BufferedConnection("c1")
        router.connect(new)

        assert old.closed
        assert router.subscriptions("c1") == frozenset()
        router.subscribe(new, [1])
        router.publish(1, PAYLOAD)
        assert new.drain() == [PAYLOAD]

    def test_close_disconnects_everyone(self):
        router = NotificationRouter()
        a, b = BufferedConnection("a"), BufferedConnection("b")
        router.subscribe(a, [1])
        router.subscribe(b, [2])
        router.close()

        assert a.closed and b.closed
        assert router.publish(1, PAYLOAD) == 0


class TestConcurrency:
    def test_publish_while_subscriptions_change(self):
        router = NotificationRouter()
        connections = [BufferedConnection(f"c{i}", max_pending=10_000) for i in range(20)]

        def churn(connection: BufferedConnection) -> None:
            for n in range(50):
                router.subscribe(connection, [n % 3, 99])

        def spam(_: int) -> None:
            for _ in range(50):
                router.publish(99, PAYLOAD)

        with ThreadPoolExecutor(max_workers=8) as executor:
            futures = [executor.submit(churn, c) for c in connections]
            futures += [executor.submit(spam, i) for i in range(4)]
            for f in futures:
                f.result()

        assert router.subscribers(99) == frozenset(c.id for c in connections)
        assert all(router.is_connected(c.id) for c in connections)
