"""JSON-lines channel sink for harvested case batches.

A channel is a directory `<output_dir>/<topic>/` holding a `channel.json`
metadata file and one `.jsonl` file per published batch. Each batch file
is written to a temp file and moved into place with `os.replace`, so a
batch is either fully visible or absent.
"""

import json
import os
import tempfile
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from court_harvest.lib.config import Config
from court_harvest.lib.errors import PublishError
from court_harvest.lib.logging_config import get_logger
from court_harvest.models.case import CaseRecord
from court_harvest.models.search_context import CrawlContext

logger = get_logger()

CHANNEL_METADATA_FILE = "channel.json"


def record_message(record: CaseRecord, timestamp: Optional[datetime] = None) -> dict:
    """camelCase message body of one record with an id and UTC timestamp."""
    message = record.to_dict()
    message["id"] = str(uuid.uuid4())
    message["timestamp"] = (timestamp or datetime.now(timezone.utc)).isoformat()
    return message


class ExportService:
    """Publishes case batches to filesystem channels."""

    def __init__(
        self,
        output_dir: Optional[str] = None,
        channel_settings: Optional[dict] = None,
        retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.output_dir = Path(output_dir or Config.get_output_dir())
        self.channel_settings = channel_settings or Config.get_channel_settings()
        self.retries = max(1, Config.get_publish_retries() if retries is None else int(retries))
        self.backoff_seconds = (
            Config.get_publish_backoff_seconds() if backoff_seconds is None else backoff_seconds
        )
        self._sleep = sleep
        logger.info(f"ExportService initialized with output directory: {self.output_dir}")

    def channel_dir(self, topic: str) -> Path:
        return self.output_dir / topic

    def ensure_channel(self, topic: str, context: Optional[CrawlContext] = None) -> Path:
        """Create the channel if absent; an existing channel counts as success.

        A channel already verified within `context` is not checked again.
        """
        path = self.channel_dir(topic)
        if context is not None and topic in context.verified_channels:
            return path

        path.mkdir(parents=True, exist_ok=True)
        meta_path = path / CHANNEL_METADATA_FILE
        if meta_path.exists():
            logger.info(f"Channel {topic} already exists")
        else:
            meta = {"topic": topic, **self.channel_settings}
            try:
                # exclusive create: a concurrent creator wins and we accept it
                with open(meta_path, "x", encoding="utf-8") as f:
                    json.dump(meta, f, ensure_ascii=False, indent=2)
                logger.info(
                    f"Channel {topic} created (partitions={meta.get('partitions')}, "
                    f"replication={meta.get('replication')}, retention_ms={meta.get('retention_ms')})"
                )
            except FileExistsError:
                logger.info(f"Channel {topic} already exists")

        if context is not None:
            context.verified_channels.add(topic)
        return path

    def _write_batch(self, directory: Path, messages: List[dict]) -> Path:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        final_path = directory / f"batch-{stamp}-{uuid.uuid4().hex[:8]}.jsonl"
        fd, tmp_path = tempfile.mkstemp(dir=str(directory), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                for message in messages:
                    f.write(json.dumps(message, ensure_ascii=False))
                    f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, final_path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        return final_path

    def publish_batch(
        self, topic: str, records: Iterable[CaseRecord], context: Optional[CrawlContext] = None
    ) -> Path:
        """Write every record of the batch or none of them.

        Raises:
            PublishError: the batch could not be written after all retries
        """
        directory = self.ensure_channel(topic, context)
        timestamp = datetime.now(timezone.utc)
        messages = [record_message(r, timestamp) for r in records]

        last_exc: Optional[Exception] = None
        for attempt in range(1, self.retries + 1):
            try:
                path = self._write_batch(directory, messages)
                logger.info(f"Published {len(messages)} messages to {topic}: {path.name}")
                return path
            except Exception as exc:
                last_exc = exc
                logger.warning(f"Publish attempt {attempt}/{self.retries} to {topic} failed: {exc}")
                if attempt < self.retries:
                    self._sleep(self.backoff_seconds)

        raise PublishError(
            f"Failed to publish {len(messages)} messages to {topic} after {self.retries} attempts: {last_exc}"
        ) from last_exc

    def read_channel(self, topic: str) -> List[dict]:
        """All published messages of a channel in batch order."""
        directory = self.channel_dir(topic)
        if not directory.exists():
            return []
        messages: List[dict] = []
        for path in sorted(directory.glob("batch-*.jsonl")):
            with open(path, encoding="utf-8") as f:
                messages.extend(json.loads(line) for line in f if line.strip())
        return messages
