# reportar/services/alerts.py
from __future__ import annotations

import logging
import os
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from reportar.models.incidencia import Incidencia, TipoIncidencia

log = logging.getLogger("uvicorn.error")

DEFAULT_SUBJECT = os.getenv("ALERTS_SUBJECT", "Reportar Alert")

_LABELS = {
    TipoIncidencia.PANICO: "SOS panico",
    TipoIncidencia.HOMBRE_MUERTO: "Hombre muerto",
}


# ----------------------------
# Formatters
# ----------------------------

def build_incidencia_alert_message(record: Incidencia, incidencia_id: str) -> str:
    # never include the photo: SNS caps messages at 256 KB
    parts = [
        _LABELS.get(record.incidencias, f"Incidencia {int(record.incidencias)}"),
        f"Bellota: {record.bellota}",
        f"Pos: {record.localizacion.latitud:.5f},{record.localizacion.longitud:.5f}",
        f"Id: {incidencia_id}",
    ]
    return " | ".join(parts)


# ----------------------------
# Publisher
# ----------------------------

class AlertPublisher:
    """Publishes stored incidencias to an SNS topic. The boto3 client is created lazily."""

    def __init__(self, topic_arn: str, *, region: str = "eu-north-1", client: Optional[Any] = None):
        self.topic_arn = topic_arn
        self.region = region
        self._sns = client

    @property
    def sns(self):
        if self._sns is None:
            self._sns = boto3.client("sns", region_name=self.region)
        return self._sns

    def publish_to_topic(self, message: str, *, subject: Optional[str] = None) -> str:
        resp = self.sns.publish(TopicArn=self.topic_arn, Message=message, Subject=subject or DEFAULT_SUBJECT)
        return resp["MessageId"]

    def notify(self, record: Incidencia, incidencia_id: str) -> Optional[str]:
        """
        Send the alert for an already-stored record.
        Returns the SNS MessageId, or None if publishing failed (failure is logged only).
        """
        msg = build_incidencia_alert_message(record, incidencia_id)
        try:
            return self.publish_to_topic(msg)
        except (ClientError, BotoCoreError) as e:
            log.error("Failed to publish alert for incidencia %s: %s", incidencia_id, e)
            return None
