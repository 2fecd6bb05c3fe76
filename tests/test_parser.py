from aicli.core.parser import (
    BASE_CONFIDENCE,
    CHAINED_CONFIDENCE,
    AIResponseParser,
    clean_response,
    split_chain,
)


def test_fenced_block_is_unwrapped() -> None:
    r = AIResponseParser().parse("```bash\nls -la\n```", wants_multiple=False)
    assert r is not None
    assert r.commands == ["ls -la"]
    assert r.source == "ai"
    assert r.tags == ["ai"]
    assert r.explanation == "Command suggested by AI"
    assert r.confidence == BASE_CONFIDENCE
    assert r.variables is None


def test_inline_backticks_and_extra_lines_are_dropped() -> None:
    assert clean_response("`df -h`\nshows disk usage") == "df -h"
    assert clean_response("\n\n  pwd  \n") == "pwd"


def test_chained_request_splits_and_collects_variables() -> None:
    r = AIResponseParser().parse("git add . && git commit -m {msg}", wants_multiple=True)
    assert r is not None
    assert r.commands == ["git add .", "git commit -m {msg}"]
    assert r.variables == {"msg": ""}
    assert r.confidence == CHAINED_CONFIDENCE


def test_semicolon_chain_without_multi_step_request_is_still_split() -> None:
    r = AIResponseParser().parse("cd build; make", wants_multiple=False)
    assert r is not None
    assert r.commands == ["cd build", "make"]
    assert r.confidence == BASE_CONFIDENCE


def test_multi_step_request_needs_a_chain() -> None:
    assert AIResponseParser().parse("ls -la", wants_multiple=True) is None


def test_separators_inside_quotes_do_not_split() -> None:
    commands, found = split_chain('echo "a && b; c"')
    assert commands == ['echo "a && b; c"']
    assert found is False
    assert AIResponseParser().parse('echo "a && b"', wants_multiple=True) is None


def test_pipelines_stay_one_step_unless_asked() -> None:
    r = AIResponseParser().parse("ps aux | grep node", wants_multiple=False)
    assert r is not None
    assert r.commands == ["ps aux | grep node"]

    commands, found = split_chain("ps aux | grep node", split_pipes=True)
    assert commands == ["ps aux", "grep node"]
    assert found is True

    commands, _ = split_chain("make || echo failed", split_pipes=True)
    assert commands == ["make || echo failed"]


def test_rejections() -> None:
    parser = AIResponseParser()
    assert parser.parse("", wants_multiple=False) is None
    assert parser.parse("   ", wants_multiple=False) is None
    assert parser.parse("echo " + "a" * 200, wants_multiple=False) is None
    assert parser.parse("command1 && command2", wants_multiple=True) is None
    assert parser.parse("Which directory do you mean?", wants_multiple=False) is None
    assert parser.parse("I can help with that", wants_multiple=False) is None
    assert parser.parse("Ready when you are", wants_multiple=False) is None


def test_help_flag_is_not_conversational() -> None:
    r = AIResponseParser().parse("docker run --help", wants_multiple=False)
    assert r is not None
    assert r.commands == ["docker run --help"]


def test_learning_payload_is_split_off() -> None:
    r = AIResponseParser().parse('ls_JSON_{"concepts":[]}', wants_multiple=False, learning_mode=True)
    assert r is not None
    assert r.commands == ["ls"]
    assert r.learning == {"concepts": []}


def test_learning_payload_in_fence() -> None:
    raw = 'du -sh * _JSON_ ```json\n{"explanation": "sizes", "flags": {"-s": "summary"}}\n```'
    r = AIResponseParser().parse(raw, wants_multiple=False, learning_mode=True)
    assert r is not None
    assert r.commands == ["du -sh *"]
    assert r.learning == {"explanation": "sizes", "flags": {"-s": "summary"}}


def test_bad_learning_payload_is_omitted() -> None:
    parser = AIResponseParser()
    r = parser.parse("ls_JSON_{not json", wants_multiple=False, learning_mode=True)
    assert r is not None
    assert r.commands == ["ls"]
    assert r.learning is None

    r = parser.parse("ls_JSON_[1, 2]", wants_multiple=False, learning_mode=True)
    assert r is not None
    assert r.learning is None


def test_repeated_variables_are_listed_once() -> None:
    r = AIResponseParser().parse("mkdir {dir} && cd {dir}", wants_multiple=True)
    assert r is not None
    assert r.variables == {"dir": ""}


def test_or_operator_survives_pipe_splitting() -> None:
    commands, found = split_chain("make || echo failed | tee log", split_pipes=True)
    assert commands == ["make || echo failed", "tee log"]
    assert found is True

    commands, found = split_chain("test -f x || touch x", split_pipes=True)
    assert commands == ["test -f x || touch x"]
    assert found is False


def test_dangling_separator_is_not_a_chain() -> None:
    assert AIResponseParser().parse("ls -la &&", wants_multiple=True) is None
    assert AIResponseParser().parse("; ls -la", wants_multiple=True) is None
    r = AIResponseParser().parse("ls -la &&", wants_multiple=False)
    assert r.commands == ["ls -la"]
    assert r.confidence == BASE_CONFIDENCE
