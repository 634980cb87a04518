"""Request layer for pending inputs.

InputGateApi maps the URL space of the registered execution records onto
the pause gates waiting in them, and turns every user-facing error into a
failure response.  It knows nothing about sockets; the HTTP server hands
it already-decoded payloads with the requesting principal bound to the
calling thread.

Routes
------
GET  /crumbIssuer                     crumb for the requesting principal
GET  <run>/input/                     pending inputs of a run
GET  <run>/console                    output lines of a run
POST <run>/input/<id>/submit          form with ``proceed`` (+ ``json``) or ``abort``
POST <run>/input/<id>/proceed         JSON ``{"parameter": [...]}``
POST <run>/input/<id>/proceedEmpty    no payload
POST <run>/input/<id>/abort           no payload

Example
-------
>>> api = InputGateApi(identity=ContextIdentityProvider(), crumbs=CrumbIssuer("k"))
>>> api.add_record(record)
>>> with impersonate(Principal("alice")):
...     api.handle_post("job/demo/1/input/Ok/proceedEmpty", {}, crumb)
ApiResponse(status=200, ...)
"""
from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import unquote

from aumos_input_gate.errors import InputGateError, ParameterBindingError
from aumos_input_gate.server.crumb import CRUMB_FIELD, CrumbIssuer

if TYPE_CHECKING:
    from aumos_input_gate.approval.gate import PauseGate
    from aumos_input_gate.engine.execution import ExecutionRecord
    from aumos_input_gate.permissions.provider import IdentityProvider

logger = logging.getLogger(__name__)

_INPUT_SEGMENT = "/input/"
_ACTIONS = ("submit", "proceed", "proceedEmpty", "abort")


@dataclass
class ApiResponse:
    """Status, JSON body and optional redirect target of one request."""

    status: int
    body: object = None
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def failure(cls, status: int, message: str) -> ApiResponse:
        return cls(status, {"error": "Failure", "message": message})


class InputGateApi:
    """Routes requests to the pending gates of the registered records.

    Parameters
    ----------
    identity:
        Provider resolving the requesting principal.
    crumbs:
        Crumb issuer; a randomly keyed one when omitted.
    """

    def __init__(
        self,
        identity: "IdentityProvider",
        crumbs: CrumbIssuer | None = None,
    ) -> None:
        self._identity = identity
        self._crumbs = crumbs or CrumbIssuer()
        self._records: dict[str, ExecutionRecord] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def add_record(self, record: "ExecutionRecord") -> None:
        with self._lock:
            self._records[record.url] = record

    def remove_record(self, record: "ExecutionRecord") -> None:
        with self._lock:
            self._records.pop(record.url, None)

    @property
    def records(self) -> list["ExecutionRecord"]:
        with self._lock:
            return list(self._records.values())

    @property
    def crumbs(self) -> CrumbIssuer:
        return self._crumbs

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle_get(self, path: str) -> ApiResponse:
        """Serve a read-only route."""
        path = path.lstrip("/")
        if path == "crumbIssuer":
            who = self._identity.current_principal()
            return ApiResponse(200, {"crumbRequestField": CRUMB_FIELD, "crumb": self._crumbs.issue(who.name)})

        if path.endswith("/console"):
            record = self._find_record(path[: -len("console")])
            if record is None:
                return ApiResponse.failure(404, f"No such run: {path}")
            return ApiResponse(200, {"lines": record.output.lines()})

        if path.endswith(_INPUT_SEGMENT) or path.endswith("/input"):
            run = path[: path.rfind("/input")] + "/"
            record = self._find_record(run)
            if record is None:
                return ApiResponse.failure(404, f"No such run: {run}")
            registry = record.registry
            gates = registry.pending() if registry is not None else []
            return ApiResponse(200, [gate.to_dict() for gate in gates])

        return ApiResponse.failure(404, f"Not found: /{path}")

    def handle_post(
        self,
        path: str,
        payload: Mapping[str, object],
        crumb: str | None,
    ) -> ApiResponse:
        """Serve a state-changing route.

        Parameters
        ----------
        path:
            Request path, with or without the leading ``/``.
        payload:
            Decoded JSON body or form fields.
        crumb:
            Crumb sent in the header, if any; the ``crumb`` payload field
            is used otherwise.
        """
        who = self._identity.current_principal()
        sent = crumb or _as_str(payload.get(CRUMB_FIELD))
        if not self._crumbs.validate(who.name, sent):
            logger.info("Rejected POST %s from %s: missing or invalid crumb", path, who)
            return ApiResponse.failure(400, "No valid crumb was included in the request")

        try:
            record, gate, action = self._resolve(path.lstrip("/"))
        except LookupError as exc:
            return ApiResponse.failure(404, str(exc.args[0]) if exc.args else "Not found")

        try:
            return self._dispatch(record, gate, action, payload)
        except InputGateError as exc:
            logger.debug("Input %s %s failed for %s: %s", gate.id, action, who, exc)
            return ApiResponse.failure(exc.http_status, str(exc))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _dispatch(
        self,
        record: "ExecutionRecord",
        gate: "PauseGate",
        action: str,
        payload: Mapping[str, object],
    ) -> ApiResponse:
        match action:
            case "proceed":
                gate.cast_vote(entries=_parameter_entries(payload))
                return self._status(gate)
            case "proceedEmpty":
                gate.proceed_empty()
                return self._status(gate)
            case "abort":
                gate.cancel()
                return self._status(gate)
            case "submit":
                if "proceed" in payload:
                    raw = payload.get("json")
                    form = _decode_json(raw) if raw else {}
                    gate.cast_vote(entries=_parameter_entries(form))
                elif "abort" in payload:
                    gate.cancel()
                else:
                    raise ParameterBindingError("The form needs either 'proceed' or 'abort'.")
                return ApiResponse(303, None, {"Location": f"/{record.url}console"})
        raise ParameterBindingError(f"Unknown action: {action}")

    @staticmethod
    def _status(gate: "PauseGate") -> ApiResponse:
        outcome = gate.outcome
        return ApiResponse(
            200,
            {
                "id": gate.id,
                "state": gate.state.value,
                "outcome": outcome.kind.value if outcome is not None else None,
                "approvals": gate.ledger,
            },
        )

    def _resolve(self, path: str) -> tuple["ExecutionRecord", "PauseGate", str]:
        index = path.rfind(_INPUT_SEGMENT)
        if index < 0:
            raise LookupError(f"Not found: /{path}")
        run = path[: index + 1]
        rest = path[index + len(_INPUT_SEGMENT):].strip("/")
        gate_id, _, action = rest.partition("/")
        if action not in _ACTIONS:
            raise LookupError(f"Not found: /{path}")

        record = self._find_record(run)
        if record is None:
            raise LookupError(f"No such run: {run}")
        registry = record.registry
        gate = registry.find(unquote(gate_id)) if registry is not None else None
        if gate is None:
            raise LookupError(f"No pending input with id: {unquote(gate_id)}")
        return record, gate, action

    def _find_record(self, url: str) -> "ExecutionRecord | None":
        url = url.lstrip("/")
        if not url.endswith("/"):
            url += "/"
        with self._lock:
            return self._records.get(url)


def _as_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _decode_json(raw: object) -> Mapping[str, object]:
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError as exc:
        raise ParameterBindingError(f"Malformed JSON submission: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ParameterBindingError("The JSON submission must be an object.")
    return data


def _parameter_entries(payload: Mapping[str, object]) -> list[Mapping[str, object]]:
    """The ``parameter`` entries of a submission; a single object counts as one entry."""
    raw = payload.get("parameter")
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        return [raw]
    if isinstance(raw, list):
        return raw
    raise ParameterBindingError("'parameter' must be an object or a list of objects.")
