"""Decision audit log in JSONL format."""

import json
import os
import re
from typing import Any, Dict, Optional

from decision_engine.executors.order_executor import ExecutionResult
from decision_engine.models import Decision

SENSITIVE_KEYS = ("api_key", "api_secret", "secret", "password", "credential", "auth")
SENSITIVE_VALUE = re.compile(r"(api[_-]?key|api[_-]?secret|secret|password)\s*[=:]", re.IGNORECASE)


class DecisionLogger:
    """Appends one JSON object per decision to an audit file."""

    def __init__(self, log_file: str):
        """
        Initialize logger with output file path.

        Args:
            log_file: Path to JSONL log file (will be created if doesn't exist)
        """
        self.log_file = log_file

        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

    def log_decision(self, agent_id: str, decision: Decision,
                     execution: Optional[ExecutionResult] = None) -> Dict[str, Any]:
        """
        Append a decision record to the JSONL file.

        Flushes after each write.

        Args:
            agent_id: Agent that produced the decision
            decision: Decision record
            execution: Execution outcome, if the decision was acted upon

        Returns:
            The sanitized record that was written
        """
        record = {"agent_id": agent_id, **decision.to_dict()}
        if execution is not None:
            record["execution"] = {
                "executed": execution.executed,
                "order_id": execution.order_id,
                "filled_size": execution.filled_size,
                "fill_price": execution.fill_price,
                "error": execution.error,
            }

        record = self._sanitize_log(record)

        with open(self.log_file, "a") as f:
            json.dump(record, f)
            f.write("\n")
            f.flush()
        return record

    def _sanitize_log(self, log_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Redact values that look like credentials.

        Keys named like a secret are always redacted; string values are
        redacted when they contain an assignment to a secret-like name.
        """
        sanitized = {}
        for key, value in log_dict.items():
            if any(pattern in key.lower() for pattern in SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_log(value)
            elif isinstance(value, str) and SENSITIVE_VALUE.search(value):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = value
        return sanitized
