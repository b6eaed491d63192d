from botocore.exceptions import ClientError

from reportar.services.alerts import AlertPublisher, build_incidencia_alert_message
from reportar.services.validation import validate

FOTO = "A" * 150
TOPIC = "arn:aws:sns:eu-north-1:123456789012:incidencias"


def _record(kind: int = 1):
    record, _ = validate(
        {"bellota": 7, "localizacion": {"latitud": 40.0, "longitud": -3.0}, "incidencias": kind, "foto": FOTO}
    )
    return record


class FakeSNS:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.published = []

    def publish(self, **kwargs):
        if self.fail:
            raise ClientError({"Error": {"Code": "AuthorizationError", "Message": "denied"}}, "Publish")
        self.published.append(kwargs)
        return {"MessageId": "msg-1"}


def test_message_names_kind_beacon_and_position_but_not_photo() -> None:
    msg = build_incidencia_alert_message(_record(1), "abc123")
    assert msg == "SOS panico | Bellota: 7 | Pos: 40.00000,-3.00000 | Id: abc123"
    assert FOTO not in msg


def test_dead_man_label() -> None:
    assert build_incidencia_alert_message(_record(2), "x").startswith("Hombre muerto")


def test_notify_publishes_to_topic() -> None:
    sns = FakeSNS()
    publisher = AlertPublisher(TOPIC, client=sns)

    assert publisher.notify(_record(), "abc123") == "msg-1"
    assert sns.published[0]["TopicArn"] == TOPIC
    assert "abc123" in sns.published[0]["Message"]


def test_notify_failure_is_swallowed_and_logged(caplog) -> None:
    publisher = AlertPublisher(TOPIC, client=FakeSNS(fail=True))

    with caplog.at_level("ERROR", logger="uvicorn.error"):
        assert publisher.notify(_record(), "abc123") is None
    assert "abc123" in caplog.text
