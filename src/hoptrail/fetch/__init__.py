# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Fetch pipeline: executor, redirect/retry orchestration, pagination and trail."""

from .consumers import read_bytes, read_lines, read_text
from .diagnostics import Diagnostic, DiagnosticKind, DiagnosticsSink
from .executor import RequestExecutor, build_request
from .hashing import HashingStream, StreamHasher
from .orchestrator import FetchState, OrchestrationOutcome, RedirectRetryOrchestrator
from .pagination import PageConsumer, PaginationFollower
from .trail import MetadataTrail

__all__ = [
    "Diagnostic",
    "DiagnosticKind",
    "DiagnosticsSink",
    "FetchState",
    "HashingStream",
    "MetadataTrail",
    "OrchestrationOutcome",
    "PageConsumer",
    "PaginationFollower",
    "RedirectRetryOrchestrator",
    "RequestExecutor",
    "StreamHasher",
    "build_request",
    "read_bytes",
    "read_lines",
    "read_text",
]
