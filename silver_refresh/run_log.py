import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional, Tuple

BANNER = "=" * 50
RULE = "-" * 50


class RunLogger:
    """
    Tracks start/end timestamps for every table of a load and for the batch
    as a whole, and writes the progress lines operators read.

    One instance belongs to one run, so its timings need no locking.
    """

    def __init__(self, logger: logging.Logger, layer: str = "Silver",
                 clock: Callable[[], datetime] = datetime.now):
        self.logger = logger
        self.layer = layer
        self.clock = clock
        self.batch_start: Optional[datetime] = None
        self.batch_end: Optional[datetime] = None
        self._tables: Dict[str, List[Optional[datetime]]] = {}

    def start_batch(self) -> None:
        self.batch_start = self.clock()
        self.batch_end = None
        self.logger.info(BANNER)
        self.logger.info(f"Loading {self.layer} Layer")
        self.logger.info(BANNER)

    def end_batch(self) -> None:
        self.batch_end = self.clock()
        self.logger.info(BANNER)
        self.logger.info(f"Loading {self.layer} Layer is Completed")
        self.logger.info(f"   - Total Load Duration: {self.total_seconds():.3f} seconds")
        self.logger.info(BANNER)

    def start_table(self, table: str) -> None:
        self._tables[table] = [self.clock(), None]
        self.logger.info(f">> Truncating Table: {table}")

    def end_table(self, table: str, rows: Optional[int] = None) -> None:
        timing = self._tables.get(table)
        if timing is None:
            raise KeyError(f"Table {table} was never started")
        timing[1] = self.clock()
        if rows is not None:
            self.logger.info(f">> Inserted {rows} rows into: {table}")
        self.logger.info(f">> Load Duration: {self.table_seconds(table):.3f} seconds")
        self.logger.info(RULE)

    @contextmanager
    def track(self, table: str) -> Iterator[None]:
        """Time a table load; the end mark is written even if the load fails."""
        self.start_table(table)
        try:
            yield
        finally:
            if self._tables[table][1] is None:
                self._tables[table][1] = self.clock()

    def table_seconds(self, table: str) -> float:
        start, end = self._tables[table]
        if end is None:
            return 0.0
        return (end - start).total_seconds()

    def total_seconds(self) -> float:
        if self.batch_start is None or self.batch_end is None:
            return 0.0
        return (self.batch_end - self.batch_start).total_seconds()

    def timings(self) -> Dict[str, Tuple[datetime, Optional[datetime]]]:
        return {table: (start, end) for table, (start, end) in self._tables.items()}
