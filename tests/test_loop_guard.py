import pytest

from hearth.agent.loop_guard import ToolCallSignature, ToolLoopDetector, loop_message
from hearth.providers.base import ToolCall


def _call(name: str = "shell", arguments: str = '{"command":"date"}') -> ToolCall:
    return ToolCall(id="call_1", name=name, arguments=arguments)


def test_three_identical_calls_form_a_loop() -> None:
    detector = ToolLoopDetector()
    assert detector.record([_call()]) is None
    assert detector.record([_call()]) is None
    signature = detector.record([_call()])
    assert signature == ToolCallSignature.of(_call())


def test_different_third_call_is_not_a_loop() -> None:
    detector = ToolLoopDetector()
    detector.record([_call()])
    detector.record([_call()])
    assert detector.record([_call(arguments='{"command":"ls"}')]) is None


def test_identical_calls_in_one_batch_count() -> None:
    detector = ToolLoopDetector()
    assert detector.record([_call(), _call(), _call()]) is not None


def test_interrupted_run_resets_count() -> None:
    detector = ToolLoopDetector()
    for call in (_call(), _call(), _call(name="file_read"), _call(), _call()):
        assert detector.record([call]) is None


def test_window_forgets_old_calls() -> None:
    detector = ToolLoopDetector(window=3, threshold=3)
    detector.record([_call(), _call()])
    detector.record([_call(name="a"), _call(name="b"), _call(name="c")])
    assert detector.record([_call()]) is None


def test_signature_hashes_arguments() -> None:
    signature = ToolCallSignature.of(_call())
    assert signature.name == "shell"
    assert len(signature.args_hash) == 32


def test_invalid_configuration_rejected() -> None:
    with pytest.raises(ValueError):
        ToolLoopDetector(window=2, threshold=3)


def test_loop_message_names_tool_and_count() -> None:
    message = loop_message(ToolCallSignature.of(_call()), 3)
    assert message.startswith("Tool loop detected: 'shell' called 3 times with same arguments.")
