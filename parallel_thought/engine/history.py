# history.py
# =============================================================================
# 场景历史 — 最近 N 次成功运行的有界记录。
# / Scenario history — bounded record of the most recent successful runs.
#
# 设计目标 / Design goals:
# 1. 有界：最新在前，超出上限时丢弃最旧条目。
#    / Bounded: most-recent-first, oldest dropped beyond the cap.
# 2. 读后替换：每次写入构造新的不可变元组，读者永远看不到写了一半的列表。
#    / Read-then-replace: every write builds a new immutable tuple.
# 3. 可选落盘：临时文件 + 原子重命名，文件任意时刻都是合法 JSON。
#    / Optional persistence: temp file + atomic rename, always valid JSON.
# =============================================================================

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from parallel_thought.primitives.models import ScenarioRecord

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 10


class ScenarioHistory:
    """有界场景历史。 / Bounded scenario history.

    输出 JSON 结构 / Output JSON structure:
        [
            { "id": "...", "timestamp": 1700000000000, "problem": "...",
              "context": "...", "weights": {...}, "result": {...} | null },
            ...
        ]
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        max_entries: int = MAX_HISTORY_ENTRIES,
    ):
        """初始化历史；给定 path 时立即加载已有文件。 / Load the existing file when a path is given.

        Args:
            path: JSON 持久化路径（可选）。 / JSON persistence path (optional).
            max_entries: 条目上限。 / Entry cap.
        """
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._path = Path(path) if path is not None else None
        self._max_entries = max_entries
        self._records: Tuple[ScenarioRecord, ...] = ()
        if self._path is not None:
            self._records = self._load()

    @property
    def records(self) -> Tuple[ScenarioRecord, ...]:
        """当前快照（最新在前）。 / Current snapshot, most recent first."""
        return self._records

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def get(self, record_id: str) -> Optional[ScenarioRecord]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def append(self, record: ScenarioRecord) -> Tuple[ScenarioRecord, ...]:
        """头部插入并裁剪到上限，整体替换后落盘。 / Prepend, trim, replace wholesale, then persist."""
        current = self._records
        updated = ((record,) + current)[: self._max_entries]
        self._records = updated
        dropped = len(current) + 1 - len(updated)
        if dropped > 0:
            logger.debug("历史已满，丢弃最旧的 %d 条记录", dropped)
        self._flush()
        return updated

    def clear(self) -> None:
        self._records = ()
        self._flush()

    # -----------------------------------------------------------------
    # 持久化 / Persistence
    # -----------------------------------------------------------------

    def _load(self) -> Tuple[ScenarioRecord, ...]:
        """读取历史文件；缺失或损坏时返回空历史。 / Read the file; missing or corrupt yields empty history."""
        if self._path is None or not self._path.exists():
            return ()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"历史文件解析失败，将从空历史开始: {self._path}: {e}")
            return ()
        if not isinstance(raw, list):
            logger.warning(f"历史文件格式不正确（应为列表），将从空历史开始: {self._path}")
            return ()

        records = []
        for entry in raw:
            try:
                records.append(ScenarioRecord.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning(f"跳过无法识别的历史条目: {e.error_count()} 个字段错误")
        return tuple(records[: self._max_entries])

    def _flush(self) -> None:
        """写入 JSON 文件；失败仅记录日志，不影响运行结果。
        / Write the JSON file; failures are logged and do not affect the run.
        """
        if self._path is None:
            return
        try:
            content = json.dumps(
                [record.to_dict() for record in self._records],
                ensure_ascii=False,
                indent=2,
            )
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(content, encoding="utf-8")
            os.chmod(tmp_path, 0o600)
            tmp_path.replace(self._path)
        except OSError as e:
            logger.warning(f"历史写入失败（不影响分析结果）: {e}")
