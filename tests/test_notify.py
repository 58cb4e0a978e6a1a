"""Notifier fan-out and history"""

from justdoit.notify import NotificationLevel, Notifier


def test_subscribers_receive_notifications_until_unsubscribed():
    notifier = Notifier(history=2)
    received = []
    unsubscribe = notifier.subscribe(received.append)

    notifier.success("Todo created")
    notifier.error("Todo could not be deleted")
    unsubscribe()
    notifier.info("ignored by subscriber")

    assert [n.level for n in received] == [NotificationLevel.SUCCESS, NotificationLevel.ERROR]
    assert received[1].title == "Error"
    assert [n.message for n in notifier.recent] == [
        "Todo could not be deleted", "ignored by subscriber"
    ]
