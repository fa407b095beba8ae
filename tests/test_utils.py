import threading

import pytest

from studyshelf.utils.llm_json import parse_json_loose, strip_fences
from studyshelf.utils.pool import map_in_order


def test_strip_fences():
    assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_fences('  {"a": 1}  ') == '{"a": 1}'


def test_parse_json_loose_finds_embedded_values():
    assert parse_json_loose('Sure! {"title": "T", "author": "A"} Hope this helps.') == {"title": "T", "author": "A"}
    assert parse_json_loose('Result:\n[1, 2, 3]\n(end)', expect=list) == [1, 2, 3]


def test_parse_json_loose_rejects_wrong_type():
    with pytest.raises(ValueError):
        parse_json_loose('{"questions": "none"}', expect=list)
    with pytest.raises(ValueError):
        parse_json_loose("no json here")


def test_map_in_order_sequential_runs_on_caller_thread():
    caller = threading.get_ident()
    assert map_in_order(lambda x: (x * 2, threading.get_ident() == caller), [1, 2, 3]) == [
        (2, True), (4, True), (6, True)
    ]


def test_map_in_order_pool_keeps_order_and_raises():
    assert map_in_order(lambda x: x + 1, range(20), workers=4) == list(range(1, 21))

    def flaky(x):
        if x == 3:
            raise RuntimeError("boom")
        return x

    with pytest.raises(RuntimeError, match="boom"):
        map_in_order(flaky, range(6), workers=3)
