"""
JSON-file key-value store.

The whole store is one JSON object on disk. Every ``set``/``delete`` rewrites
the file through a temporary file in the same directory followed by
``os.replace``, so readers never see a partially written document.
"""

import json
import os
import tempfile
import threading

from typing import Any, Dict, Iterator, Optional

from sysperf.errors import ConfigurationError, EnvironmentSetupError, ErrorCode
from sysperf.interfaces.storage import KeyValueStoreInterface
from sysperf.utils import SysPerfJsonEncoder


class JsonFileStore(KeyValueStoreInterface):
    """Key-value store backed by a single JSON file."""

    def __init__(self, path: str, logger=None):
        self.path = os.path.abspath(path)
        self.logger = logger
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r") as f:
                text = f.read()
        except OSError as e:
            raise EnvironmentSetupError(
                "Unable to read key-value store",
                path=self.path,
                operation="read",
                os_error=e.strerror or str(e),
                code=EnvironmentSetupError.code_for_errno(e.errno),
            ) from e

        if not text.strip():
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Key-value store is not valid JSON: {self.path}",
                parameter="store",
                actual=str(e),
                code=ErrorCode.CONFIG_PARSE_ERROR,
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Key-value store must hold a JSON object: {self.path}",
                parameter="store",
                actual=type(data).__name__,
                code=ErrorCode.CONFIG_PARSE_ERROR,
            )
        return data

    def _save(self, data: Dict[str, Any]):
        directory = os.path.dirname(self.path)
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".sysperf_store_", suffix=".tmp", dir=directory)
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(data, f, indent=2, cls=SysPerfJsonEncoder)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise EnvironmentSetupError(
                "Unable to write key-value store",
                path=self.path,
                operation="write",
                os_error=e.strerror or str(e),
                code=EnvironmentSetupError.code_for_errno(e.errno),
            ) from e

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            # Round-trip through the encoder so stored values match what get() returns
            data[key] = json.loads(json.dumps(value, cls=SysPerfJsonEncoder))
            self._save(data)
        if self.logger:
            self.logger.verbose(f'Stored {key} in {self.path}')

    def delete(self, key: str) -> bool:
        with self._lock:
            data = self._load()
            if key not in data:
                return False
            del data[key]
            self._save(data)
        return True

    def keys(self, prefix: str = "") -> Iterator[str]:
        with self._lock:
            data = self._load()
        return iter(sorted(k for k in data if k.startswith(prefix)))
