import threading
import time

import numpy as np
import pytest

from expense_uploader.core.inference import ModelHandle


class FakeInterpreter:
    """Mimics the LiteRT interpreter API used by ScoringModel."""

    def __init__(self, seq_len=64, desc_len=None, amt_len=None, scorer=None,
                 input_names=("input_ids", "attention_mask"), n_inputs=2,
                 fail_on_invoke=False, wrong_output_len=None, fail_on_read=False,
                 invoke_delay=0.0):
        self.seq_len = seq_len
        self.desc_len = desc_len or seq_len
        self.amt_len = amt_len or seq_len
        self.scorer = scorer
        self.fail_on_invoke = fail_on_invoke
        self.wrong_output_len = wrong_output_len
        self.fail_on_read = fail_on_read
        self.invoke_delay = invoke_delay
        self.invocations = 0
        self.active_calls = 0
        self.max_active_calls = 0
        self.closed = False
        self._counter_lock = threading.Lock()
        self.tensors = {}
        names = list(input_names) + [f"extra_{i}" for i in range(n_inputs - len(input_names))]
        self._inputs = [
            {"name": names[i], "index": i, "shape": np.array([1, seq_len]), "dtype": np.int32}
            for i in range(n_inputs)
        ]
        self._outputs = [
            {"name": "description_logits", "index": 10,
             "shape": np.array([1, self.desc_len]), "dtype": np.float32},
            {"name": "amount_logits", "index": 11,
             "shape": np.array([1, self.amt_len]), "dtype": np.float32},
        ]

    def get_input_details(self):
        return self._inputs

    def get_output_details(self):
        return self._outputs

    def set_tensor(self, index, value):
        self.tensors[index] = np.array(value)

    def input_by_name(self, name):
        detail = [d for d in self._inputs if d["name"] == name][0]
        return self.tensors[detail["index"]]

    def invoke(self):
        if self.fail_on_invoke:
            raise RuntimeError("backend exploded")
        with self._counter_lock:
            self.active_calls += 1
            self.max_active_calls = max(self.max_active_calls, self.active_calls)
        if self.invoke_delay:
            time.sleep(self.invoke_delay)
        with self._counter_lock:
            self.active_calls -= 1
        self.invocations += 1
        ids = self.input_by_name("input_ids")[0]
        mask = self.input_by_name("attention_mask")[0]
        if self.scorer is not None:
            desc, amt = self.scorer(ids, mask)
        else:
            desc, amt = np.zeros(self.desc_len), np.zeros(self.amt_len)
        desc = np.asarray(desc, dtype=np.float32)
        if self.wrong_output_len is not None:
            desc = np.zeros(self.wrong_output_len, dtype=np.float32)
        self.tensors[10] = desc.reshape(1, -1)
        self.tensors[11] = np.asarray(amt, dtype=np.float32).reshape(1, -1)

    def get_tensor(self, index):
        if self.fail_on_read:
            raise ValueError("Tensor data is null. Run allocate_tensors() first")
        return self.tensors[index]

    def close(self):
        self.closed = True


@pytest.fixture
def fake_interpreter():
    return FakeInterpreter


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "model.tflite"
    path.write_bytes(b"fake-model")
    return path


@pytest.fixture
def make_handle(model_file):
    """Build a ModelHandle whose interpreter is a FakeInterpreter."""
    def _make(**kwargs):
        return ModelHandle(model_file, interpreter_factory=lambda path: FakeInterpreter(**kwargs))
    return _make
