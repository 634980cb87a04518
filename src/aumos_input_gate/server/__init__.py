"""HTTP surface for pending inputs: crumbs, request routing and the server."""
from __future__ import annotations

from aumos_input_gate.server.api import ApiResponse, InputGateApi
from aumos_input_gate.server.crumb import CRUMB_FIELD, CRUMB_HEADER, CrumbIssuer
from aumos_input_gate.server.http import (
    GROUPS_HEADER,
    USER_HEADER,
    InputGateServer,
    principal_from_headers,
)

__all__ = [
    "ApiResponse",
    "CRUMB_FIELD",
    "CRUMB_HEADER",
    "CrumbIssuer",
    "GROUPS_HEADER",
    "InputGateApi",
    "InputGateServer",
    "USER_HEADER",
    "principal_from_headers",
]
