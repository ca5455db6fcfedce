"""Single-pass size statistics for a table."""

from __future__ import annotations

from dataclasses import asdict, dataclass

# Larger than any key or record size; marks a minimum that was never set
SIZE_UNSET = 1 << 64


@dataclass(frozen=True)
class StatsSummary:
    """Finalized statistics. Size fields are None when the table is empty."""

    count: int
    extended_keys: int
    total_key_size: int | None = None
    average_key_size: int | None = None
    min_key_size: int | None = None
    max_key_size: int | None = None
    total_record_size: int | None = None
    average_record_size: int | None = None
    min_record_size: int | None = None
    max_record_size: int | None = None

    def to_dict(self) -> dict[str, int]:
        """Return the summary as a dict, leaving out unset fields."""
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class TableStats:
    """Running totals accumulated while traversing a table."""

    count: int = 0
    total_key_size: int = 0
    min_key_size: int = SIZE_UNSET
    max_key_size: int = 0
    total_record_size: int = 0
    min_record_size: int = SIZE_UNSET
    max_record_size: int = 0
    extended_keys: int = 0

    def observe(self, key_size: int, record_size: int, inline_key_limit: int) -> None:
        """Account for one entry.

        Keys longer than `inline_key_limit` count as extended keys.
        """
        self.count += 1

        self.total_key_size += key_size
        self.min_key_size = min(self.min_key_size, key_size)
        self.max_key_size = max(self.max_key_size, key_size)

        self.total_record_size += record_size
        self.min_record_size = min(self.min_record_size, record_size)
        self.max_record_size = max(self.max_record_size, record_size)

        if key_size > inline_key_limit:
            self.extended_keys += 1

    def finalize(self) -> StatsSummary:
        """Return the accumulated statistics."""
        if self.count == 0:
            return StatsSummary(count=0, extended_keys=self.extended_keys)
        return StatsSummary(
            count=self.count,
            extended_keys=self.extended_keys,
            total_key_size=self.total_key_size,
            average_key_size=self.total_key_size // self.count,
            min_key_size=self.min_key_size,
            max_key_size=self.max_key_size,
            total_record_size=self.total_record_size,
            average_record_size=self.total_record_size // self.count,
            min_record_size=self.min_record_size,
            max_record_size=self.max_record_size,
        )


def format_summary(summary: StatsSummary, indent: str = "        ") -> list[str]:
    """Return the printable lines for a summary.

    An empty table yields only the item count.
    """
    lines = [f"{indent}number of items:        {summary.count}"]
    if summary.count == 0:
        return lines
    lines += [
        f"{indent}average key size:       {summary.average_key_size}",
        f"{indent}minimum key size:       {summary.min_key_size}",
        f"{indent}maximum key size:       {summary.max_key_size}",
        f"{indent}number of extended keys:{summary.extended_keys}",
        f"{indent}total keys (bytes):     {summary.total_key_size}",
        f"{indent}average record size:    {summary.average_record_size}",
        f"{indent}minimum record size:    {summary.min_record_size}",
        f"{indent}maximum record size:    {summary.max_record_size}",
        f"{indent}total records (bytes):  {summary.total_record_size}",
    ]
    return lines
