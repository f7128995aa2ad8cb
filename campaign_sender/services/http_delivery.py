"""HTTP delivery of batches as JSON to the campaign endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import requests
import structlog
from requests.adapters import HTTPAdapter

from campaign_sender.core.errors import DeliveryFailure
from campaign_sender.models.delivery_outcome import DeliveryOutcome
from campaign_sender.utils.validators import extract_domain

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from campaign_sender.models.batch import Batch

logger = structlog.get_logger(__name__)

# Maximum characters of a response body kept in a failure detail
_MAX_DETAIL_BODY = 200


def build_message(record: Sequence[str], template_name: str = "template_name") -> dict[str, str]:
    """Map a CSV record to a templated message.

    Field 0 is the channel type, field 1 the external id, and every further
    field a template body numbered from 1.
    """
    message: dict[str, str] = {}
    if len(record) > 0:
        message["channel_type"] = record[0]
    if len(record) > 1:
        message["external_id"] = record[1]
    for position, value in enumerate(record[2:], start=1):
        message[f"{template_name}:body_{position}"] = value
    return message


def build_payload(batch: Batch, template_name: str = "template_name") -> list[dict[str, str]]:
    """JSON body for one batch: an array of messages in record order."""
    return [build_message(record, template_name) for record in batch.records]


class HttpBatchDeliverer:
    """POST each batch as a JSON array to one endpoint.

    One session is shared by all worker threads; its connection pool is sized
    to the concurrency limit. Any 2xx status is success; other statuses and
    transport errors become failed outcomes and are never raised.
    """

    def __init__(
        self,
        endpoint_url: str,
        api_key: str,
        extra_headers: Mapping[str, str] | None = None,
        template_name: str = "template_name",
        timeout: float = 30.0,
        pool_size: int = 10,
        session: requests.Session | None = None,
    ) -> None:
        self.endpoint_url = endpoint_url
        self.template_name = template_name
        self.timeout = timeout
        self.session = session or requests.Session()
        if session is None:
            adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)
        self.session.headers.update(dict(extra_headers or {}))
        self.session.headers.update(
            {
                "X-API-Key": api_key,
                "Content-Type": "application/json",
            }
        )

    def __call__(self, batch: Batch) -> DeliveryOutcome:
        try:
            status_code = self._post(batch)
        except DeliveryFailure as exc:
            return DeliveryOutcome.failed(str(exc), status_code=exc.status_code)
        except requests.RequestException as exc:
            logger.warning(
                "batch_request_error",
                batch_index=batch.index,
                host=extract_domain(self.endpoint_url),
                error=str(exc),
            )
            return DeliveryOutcome.failed(f"{type(exc).__name__}: {exc}")

        return DeliveryOutcome.ok(
            f"Sent batch {batch.index} of {len(batch)} records (HTTP {status_code})",
            status_code=status_code,
        )

    def _post(self, batch: Batch) -> int:
        """Send one batch and return the status code. Non-2xx raises DeliveryFailure."""
        payload: list[dict[str, Any]] = build_payload(batch, self.template_name)
        response = self.session.post(self.endpoint_url, json=payload, timeout=self.timeout)

        if not 200 <= response.status_code < 300:
            body = (response.text or "")[:_MAX_DETAIL_BODY]
            msg = f"HTTP {response.status_code} for batch {batch.index}"
            if body:
                msg = f"{msg}: {body}"
            raise DeliveryFailure(msg, status_code=response.status_code)

        logger.debug(
            "batch_posted",
            batch_index=batch.index,
            records=len(batch),
            status_code=response.status_code,
        )
        return response.status_code

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> HttpBatchDeliverer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class DryRunDeliverer:
    """Log the batch that would be sent and report success without any I/O."""

    def __init__(self, template_name: str = "template_name") -> None:
        self.template_name = template_name

    def __call__(self, batch: Batch) -> DeliveryOutcome:
        payload = build_payload(batch, self.template_name)
        logger.info("dry_run_batch", batch_index=batch.index, records=len(payload))
        return DeliveryOutcome.ok(f"Dry run: batch {batch.index} of {len(batch)} records not sent")
