import threading
import time

import numpy as np
import pytest

from expense_uploader.core.errors import InferenceError, ModelLoadError
from expense_uploader.core.inference import ModelHandle, ScoringModel
from expense_uploader.core.tokenizer import encode


def test_shapes_are_discovered_from_the_model(fake_interpreter):
    model = ScoringModel(fake_interpreter(seq_len=32, desc_len=30, amt_len=28))
    assert model.max_sequence_length == 32
    assert model.description_length == 30
    assert model.amount_length == 28


def test_score_returns_arrays_of_output_length(fake_interpreter):
    model = ScoringModel(fake_interpreter(seq_len=32, desc_len=30, amt_len=28))
    tokens, mask = encode("Totale 12,50", 32)
    out = model.score(tokens, mask, original_text="Totale 12,50")
    assert out.description_scores.shape == (30,)
    assert out.amount_scores.shape == (28,)
    assert out.original_text == "Totale 12,50"
    assert out.tokenized_input == tokens


def test_inputs_are_fed_as_batched_int_tensors(fake_interpreter):
    interpreter = fake_interpreter(seq_len=16)
    model = ScoringModel(interpreter)
    model.process_text("ab")
    ids = interpreter.input_by_name("input_ids")
    mask = interpreter.input_by_name("attention_mask")
    assert ids.shape == (1, 16) and ids.dtype == np.int32
    assert ids[0, :3].tolist() == [36, 37, 0]
    assert mask[0].tolist() == [1, 1] + [0] * 14


def test_mask_input_is_matched_by_name(fake_interpreter):
    interpreter = fake_interpreter(seq_len=8, input_names=("attention_mask", "input_ids"))
    model = ScoringModel(interpreter)
    model.process_text("abc")
    assert interpreter.input_by_name("input_ids")[0, :3].tolist() == [36, 37, 38]
    assert interpreter.input_by_name("attention_mask")[0].tolist() == [1, 1, 1, 0, 0, 0, 0, 0]


def test_wrong_input_length_is_an_inference_error(fake_interpreter):
    model = ScoringModel(fake_interpreter(seq_len=16))
    with pytest.raises(InferenceError):
        model.score([1] * 8, [1] * 8)


def test_output_shape_mismatch_is_an_inference_error(fake_interpreter):
    model = ScoringModel(fake_interpreter(seq_len=16, wrong_output_len=5))
    with pytest.raises(InferenceError):
        model.process_text("abc")


def test_backend_failure_is_an_inference_error(fake_interpreter):
    model = ScoringModel(fake_interpreter(seq_len=16, fail_on_invoke=True))
    with pytest.raises(InferenceError):
        model.process_text("abc")


def test_unexpected_signature_is_a_load_error(fake_interpreter):
    with pytest.raises(ModelLoadError):
        ScoringModel(fake_interpreter(n_inputs=3))


def test_describe_lists_tensors(fake_interpreter):
    lines = ScoringModel(fake_interpreter(seq_len=16)).describe()
    assert lines[0] == "Input tensor count: 2"
    assert "Input 0: input_ids, shape: [1, 16], type: int32" in lines


def test_missing_model_file(tmp_path):
    handle = ModelHandle(tmp_path / "missing.tflite", interpreter_factory=lambda p: None)
    with pytest.raises(ModelLoadError):
        handle.acquire()
    assert not handle.is_loaded


def test_malformed_model_file(model_file):
    def broken(path):
        raise ValueError("Model provided has model identifier 'fake', should be 'TFL3'")

    with pytest.raises(ModelLoadError):
        ModelHandle(model_file, interpreter_factory=broken).acquire()


def test_acquire_loads_once(make_handle):
    handle = make_handle(seq_len=16)
    first = handle.acquire()
    assert handle.acquire() is first
    assert handle.load_count == 1


def test_concurrent_acquire_loads_once(model_file, fake_interpreter):
    def slow_factory(path):
        time.sleep(0.05)
        return fake_interpreter(seq_len=16)

    handle = ModelHandle(model_file, interpreter_factory=slow_factory)
    models = []
    threads = [threading.Thread(target=lambda: models.append(handle.acquire())) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert handle.load_count == 1
    assert len(models) == 8
    assert all(m is models[0] for m in models)


def test_release_then_acquire_reloads(make_handle):
    handle = make_handle(seq_len=16)
    first = handle.acquire()
    handle.release()
    assert not handle.is_loaded
    assert first.interpreter is None

    second = handle.acquire()
    assert second is not first
    assert handle.load_count == 2


def test_handle_scores_lazily(make_handle):
    handle = make_handle(seq_len=16)
    out = handle.process_text("cash 4,00")
    assert handle.is_loaded
    assert len(out.tokenized_input) == 16


def test_context_manager_releases(make_handle):
    with make_handle(seq_len=16) as handle:
        assert handle.is_loaded
    assert not handle.is_loaded


def test_output_read_failure_is_an_inference_error(fake_interpreter):
    model = ScoringModel(fake_interpreter(seq_len=16, fail_on_read=True))
    with pytest.raises(InferenceError):
        model.process_text("abc")


def test_handle_wraps_output_read_failure(make_handle):
    with pytest.raises(InferenceError):
        make_handle(seq_len=16, fail_on_read=True).process_text("abc")


def test_bad_signature_closes_the_interpreter(model_file, fake_interpreter):
    created = []

    def factory(path):
        created.append(fake_interpreter(n_inputs=3))
        return created[-1]

    handle = ModelHandle(model_file, interpreter_factory=factory)
    with pytest.raises(ModelLoadError):
        handle.acquire()
    assert created[0].closed
    assert not handle.is_loaded


def test_inference_calls_run_one_at_a_time(model_file, fake_interpreter):
    interpreter = fake_interpreter(seq_len=16, invoke_delay=0.02)
    handle = ModelHandle(model_file, interpreter_factory=lambda path: interpreter)
    errors = []

    def worker():
        try:
            handle.process_text("totale 12,50")
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert interpreter.invocations == 6
    assert interpreter.max_active_calls == 1


def test_release_waits_for_running_call(model_file, fake_interpreter):
    interpreter = fake_interpreter(seq_len=16, invoke_delay=0.1)
    handle = ModelHandle(model_file, interpreter_factory=lambda path: interpreter)
    handle.acquire()
    results = []
    errors = []

    def worker():
        try:
            results.append(handle.process_text("cash 4,00"))
        except Exception as e:
            errors.append(e)

    t = threading.Thread(target=worker)
    t.start()
    while interpreter.active_calls == 0 and t.is_alive():
        time.sleep(0.005)
    handle.release()
    t.join()

    assert errors == []
    assert len(results) == 1 and results[0].amount_scores.shape == (16,)
    assert interpreter.closed
    assert not handle.is_loaded
