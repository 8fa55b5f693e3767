"""Save and load N-tuple weight tables in the native binary layout.

File layout: a uint32 table count, then for each table a size_t element
count followed by that many float32 values. All fields use the host's native
byte order and widths, so a file only round-trips between machines of the
same architecture.
"""

from __future__ import annotations

import logging
from pathlib import Path
import struct

import numpy as np

from ntuple import TABLE_SIZE, NTupleNetwork

logger = logging.getLogger(__name__)

COUNT_FORMAT = "@I"
LENGTH_FORMAT = "@N"
WEIGHT_DTYPE = np.dtype("=f4")


class WeightFileError(Exception):
    """Raised when a weight file cannot be read or written."""


def _read_exact(stream, size: int, path: Path, what: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise WeightFileError(
            f"{path}: truncated {what}: expected {size} bytes, got {len(data)}"
        )
    return data


def save_weights(ntuple: NTupleNetwork, path: str | Path) -> None:
    """Write every weight table of the network to ``path``."""
    output = Path(path)
    try:
        stream = output.open("wb")
    except OSError as exc:
        raise WeightFileError(f"cannot open {output} for writing: {exc}") from exc

    with stream:
        stream.write(struct.pack(COUNT_FORMAT, len(ntuple.weights)))
        for table in ntuple.weights:
            stream.write(struct.pack(LENGTH_FORMAT, len(table)))
            stream.write(np.ascontiguousarray(table, dtype=WEIGHT_DTYPE).tobytes())

    logger.info("saved %d weight tables to %s", len(ntuple.weights), output)


def load_weights(ntuple: NTupleNetwork, path: str | Path) -> None:
    """Replace the network's weight tables with the contents of ``path``."""
    source = Path(path)
    try:
        stream = source.open("rb")
    except OSError as exc:
        raise WeightFileError(f"cannot open {source} for reading: {exc}") from exc

    with stream:
        (count,) = struct.unpack(
            COUNT_FORMAT,
            _read_exact(stream, struct.calcsize(COUNT_FORMAT), source, "table count"),
        )
        if count != len(ntuple.patterns):
            raise WeightFileError(
                f"{source}: table count mismatch: expected {len(ntuple.patterns)}, "
                f"got {count}"
            )

        tables: list[np.ndarray] = []
        for idx in range(count):
            (length,) = struct.unpack(
                LENGTH_FORMAT,
                _read_exact(
                    stream, struct.calcsize(LENGTH_FORMAT), source, f"table {idx} size"
                ),
            )
            if length != TABLE_SIZE:
                raise WeightFileError(
                    f"{source}: table {idx} size mismatch: expected {TABLE_SIZE}, "
                    f"got {length}"
                )
            data = _read_exact(
                stream, length * WEIGHT_DTYPE.itemsize, source, f"table {idx}"
            )
            tables.append(np.frombuffer(data, dtype=WEIGHT_DTYPE).astype(np.float32))

        if stream.read(1):
            raise WeightFileError(f"{source}: unexpected trailing bytes")

    ntuple.weights = tables
    logger.info("loaded %d weight tables from %s", count, source)
