"""Chunked concurrent evaluation with order-preserving fan-in.

Inputs are split into contiguous chunks, each chunk is evaluated as one
unit on a thread pool, and results are written back by chunk index, so
the flattened output always follows input order whatever order the
chunks finish in.

`BatchGenerator` is the coordinator for a full generation run: it walks
the coordinates in top-level batches, fans each batch out, and checks a
cancellation flag between batches. Workers never touch the flag or the
accumulated output.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

from config import (
    SYNTH_BATCH_SIZE, SCORE_BATCH_SIZE, GENERATION_BATCH_SIZE,
    PROGRESS_EVERY_N_BATCHES, MAX_WORKERS,
)
from data.synthetic_records import SynthesisOptions, synthesize_point
from model.risk import FormulaScorer, compute_risk_stats

logger = logging.getLogger(__name__)


def chunked(items, batch_size):
    """List of (chunk_index, chunk) over contiguous slices of `items`."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size!r}")
    items = list(items)
    return [(index, items[start:start + batch_size])
            for index, start in enumerate(range(0, len(items), batch_size))]


def map_chunks_concurrent(items, chunk_fn, batch_size, max_workers=MAX_WORKERS):
    """Apply `chunk_fn` to every chunk of `items` concurrently.

    `chunk_fn` takes a list and returns a list. The result is the
    concatenation of the chunk outputs in chunk-index order. An exception
    raised by any chunk propagates to the caller.
    """
    slices = chunked(items, batch_size)
    if not slices:
        return []

    partial = [None] * len(slices)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(chunk_fn, chunk): index for index, chunk in slices}
        for future in as_completed(futures):
            partial[futures[future]] = future.result()

    return [out for chunk in partial for out in chunk]


# ── Synthesis ──────────────────────────────────────────────────────────

def synthesize_batch(coords, options: SynthesisOptions = None):
    """Records for `coords`, in order, on the calling thread."""
    options = options if options is not None else SynthesisOptions()
    return [synthesize_point(c, options) for c in coords]


def synthesize_batch_concurrent(coords, options: SynthesisOptions = None,
                                batch_size: int = SYNTH_BATCH_SIZE,
                                max_workers=MAX_WORKERS):
    """Records for `coords` with chunks synthesized concurrently.

    Output is identical to ``synthesize_batch(coords, options)``.
    """
    options = options if options is not None else SynthesisOptions()
    return map_chunks_concurrent(
        coords, lambda chunk: synthesize_batch(chunk, options),
        batch_size, max_workers,
    )


# ── Scoring ────────────────────────────────────────────────────────────

def score_batch_concurrent(records, scorer=None,
                           batch_size: int = SCORE_BATCH_SIZE,
                           max_workers=MAX_WORKERS):
    """Fire probability per record, in record order."""
    scorer = scorer if scorer is not None else FormulaScorer()
    return map_chunks_concurrent(
        records, lambda chunk: [scorer(r) for r in chunk],
        batch_size, max_workers,
    )


# ── Cancellable generation run ─────────────────────────────────────────

class BatchGenerator:
    """Coordinator for cancellable, progress-reporting generation runs.

    A run is all-or-nothing: if cancellation is requested at any point
    before it returns, the accumulated records are discarded and an empty
    list is returned. Each call to `generate` starts with the flag cleared,
    so the same instance can be reused after a cancelled run.
    """

    def __init__(self, batch_size: int = GENERATION_BATCH_SIZE,
                 synth_batch_size: int = SYNTH_BATCH_SIZE,
                 score_batch_size: int = SCORE_BATCH_SIZE,
                 max_workers=MAX_WORKERS,
                 startup_delay: float = 0.0,
                 settle_delay: float = 0.0):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size!r}")
        self.batch_size = batch_size
        self.synth_batch_size = synth_batch_size
        self.score_batch_size = score_batch_size
        self.max_workers = max_workers
        self.startup_delay = startup_delay
        self.settle_delay = settle_delay
        self._cancelled = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        self._cancelled.set()

    def reset_cancellation(self):
        self._cancelled.clear()

    def _report(self, progress, fraction):
        if progress is None:
            return
        try:
            progress(fraction)
        except Exception:
            logger.exception("Progress observer raised; continuing run")

    def generate(self, coords, options: SynthesisOptions = None, progress=None):
        """Synthesize records for `coords` in top-level batches.

        Parameters
        ----------
        coords : sequence of Coordinate
        options : SynthesisOptions, optional
        progress : callable(float), optional
            Called on the coordinating thread with completed/total after the
            first batch, every `PROGRESS_EVERY_N_BATCHES` batches, and the
            last batch. Values are non-decreasing within a run.

        Returns
        -------
        list of EnvironmentalRecord
            In `coords` order, or empty if the run was cancelled.
        """
        self.reset_cancellation()
        options = options if options is not None else SynthesisOptions()
        coords = list(coords)
        total = len(coords)

        if self.startup_delay:
            time.sleep(self.startup_delay)

        records = []
        for index, batch in chunked(coords, self.batch_size):
            if self.is_cancelled:
                break

            batch_records = synthesize_batch_concurrent(
                batch, options, self.synth_batch_size, self.max_workers)

            if self.is_cancelled:
                break
            records.extend(batch_records)

            if index % PROGRESS_EVERY_N_BATCHES == 0 or len(records) == total:
                self._report(progress, len(records) / total)

        if self.is_cancelled:
            logger.info(f"Generation cancelled after {len(records)}/{total} records")
            return []

        if self.settle_delay:
            time.sleep(self.settle_delay)

        logger.debug(f"Generated {len(records)} records")
        return records

    def calculate_fire_probabilities(self, records, scorer=None):
        """Score `records` concurrently; returns (probabilities, RiskStats)."""
        probabilities = score_batch_concurrent(
            records, scorer, self.score_batch_size, self.max_workers)
        return probabilities, compute_risk_stats(probabilities)
