import threading
import time

import pytest

from data.grid import build_grid
from data.synthetic_records import synthesize_point
from model.batch import (
    BatchGenerator, chunked, map_chunks_concurrent, score_batch_concurrent,
    synthesize_batch, synthesize_batch_concurrent,
)
from model.risk import fallback_probability


@pytest.fixture
def coords():
    # 25 x 20 = 500 cells
    return build_grid(37.30, 37.40, -122.10, -122.00, 450)


def test_chunked():
    assert chunked(range(5), 2) == [(0, [0, 1]), (1, [2, 3]), (2, [4])]
    assert chunked([], 3) == []
    with pytest.raises(ValueError):
        chunked([1], 0)


def test_map_chunks_restores_order_when_chunks_finish_out_of_order():
    items = list(range(12))

    def slow_first(chunk):
        # earlier chunks finish last
        time.sleep(0.01 * (12 - chunk[0]))
        return [x * 10 for x in chunk]

    assert map_chunks_concurrent(items, slow_first, 1, max_workers=12) == [x * 10 for x in items]


def test_map_chunks_propagates_errors():
    def boom(chunk):
        raise RuntimeError("chunk failed")

    with pytest.raises(RuntimeError):
        map_chunks_concurrent([1, 2, 3], boom, 1)


def test_synthesize_batch_matches_pointwise(coords, options):
    assert synthesize_batch(coords, options) == [synthesize_point(c, options) for c in coords]


@pytest.mark.parametrize("batch_size,max_workers", [(1, 4), (7, 2), (200, None), (10_000, 1)])
def test_concurrent_synthesis_is_order_preserving(coords, options, batch_size, max_workers):
    records = synthesize_batch_concurrent(coords, options, batch_size, max_workers)
    assert [r.coordinate for r in records] == coords
    assert records == synthesize_batch(coords, options)


def test_repeated_runs_identical(options):
    first = synthesize_batch_concurrent(build_grid(-1, 1, -1, 1, 20_000), options)
    second = synthesize_batch_concurrent(build_grid(-1, 1, -1, 1, 20_000), options)
    assert first == second


def test_empty_inputs(options):
    assert synthesize_batch_concurrent([], options) == []
    assert score_batch_concurrent([]) == []
    assert BatchGenerator().generate([], options) == []


def test_score_batch_concurrent(coords, options):
    records = synthesize_batch(coords, options)
    probs = score_batch_concurrent(records, batch_size=13)
    assert probs == [fallback_probability(r) for r in records]


def test_generate_reports_progress(coords, options):
    reported = []
    gen = BatchGenerator(batch_size=10, synth_batch_size=3)
    records = gen.generate(coords[:225], options, progress=reported.append)
    assert records == synthesize_batch(coords[:225], options)
    # batches 0, 10, 20 and the final batch 22
    assert reported == [10 / 225, 110 / 225, 210 / 225, 1.0]
    assert reported == sorted(reported)


def test_cancel_discards_partial_output(coords, options):
    gen = BatchGenerator(batch_size=10)

    def cancel_on_first_report(fraction):
        gen.cancel()

    assert gen.generate(coords, options, progress=cancel_on_first_report) == []
    assert gen.is_cancelled

    # the same instance runs normally afterwards
    assert gen.generate(coords, options) == synthesize_batch(coords, options)
    assert not gen.is_cancelled


def test_cancel_after_final_batch_still_discards(options):
    gen = BatchGenerator()
    grid = build_grid(0.0, 0.01, 0.0, 0.01, 500)
    assert gen.generate(grid, options, progress=lambda f: gen.cancel()) == []


def test_cancel_from_another_thread(coords, options):
    gen = BatchGenerator(batch_size=1, synth_batch_size=1)
    started = threading.Event()

    def progress(fraction):
        started.set()
        time.sleep(0.001)

    result = {}
    worker = threading.Thread(
        target=lambda: result.setdefault("records", gen.generate(coords, options, progress)))
    worker.start()
    started.wait(timeout=5)
    gen.cancel()
    worker.join(timeout=30)
    assert result["records"] == []


def test_reset_cancellation():
    gen = BatchGenerator()
    gen.cancel()
    assert gen.is_cancelled
    gen.reset_cancellation()
    assert not gen.is_cancelled


def test_failing_progress_observer_does_not_abort(coords, options):
    def broken(fraction):
        raise RuntimeError("ui gone")

    records = BatchGenerator(batch_size=50).generate(coords, options, progress=broken)
    assert len(records) == len(coords)


def test_calculate_fire_probabilities(coords, options):
    gen = BatchGenerator(score_batch_size=17)
    records = gen.generate(coords, options)
    probs, stats = gen.calculate_fire_probabilities(records)
    assert probs == [fallback_probability(r) for r in records]
    assert stats.sample_count == len(records)
    assert stats.maximum == max(probs)
    assert stats.average == pytest.approx(sum(probs) / len(probs))


def test_invalid_batch_size():
    with pytest.raises(ValueError):
        BatchGenerator(batch_size=0)


def test_delays_do_not_change_output(options):
    grid = build_grid(0.0, 0.01, 0.0, 0.01, 500)
    gen = BatchGenerator(startup_delay=0.01, settle_delay=0.01)
    assert gen.generate(grid, options) == synthesize_batch(grid, options)
