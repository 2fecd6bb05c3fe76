from aicli.core.rules import BUILTIN_RULES, BuiltinRules, Rule
from aicli.utils.schema import OSInfo


def test_platform_specific_commands(linux, windows) -> None:
    rules = BuiltinRules()
    mac = OSInfo(platform="macos", arch="arm64", shell="zsh")

    assert rules.apply("show ip", linux).commands == ["ip addr show"]
    assert rules.apply("show ip", mac).commands == ["ifconfig"]
    assert rules.apply("show ip", windows).commands == ["ipconfig"]
    assert rules.apply("show memory", mac).commands == ["vm_stat"]


def test_rule_result_shape(linux) -> None:
    hit = BuiltinRules().apply("commit changes", linux)
    assert hit.source == "rule"
    assert hit.commands == ['git commit -m "{message}"']
    assert hit.variables == {"message": ""}
    assert 0 <= hit.confidence <= 1


def test_triggers_match_whole_words(linux) -> None:
    rules = BuiltinRules()
    assert rules.apply("docker ps", linux).commands == ["docker ps -a"]
    assert rules.apply("ps", linux).commands == ["ps aux"]
    assert rules.apply("pslist", linux) is None
    assert rules.apply("tools", linux) is None
    assert rules.apply("ls-files", linux) is None


def test_first_rule_in_table_order_wins(linux) -> None:
    custom = [
        Rule(("deploy",), {"*": "make deploy"}, "first", ("x",)),
        Rule(("deploy",), {"*": "./deploy.sh"}, "second", ("x",)),
    ]
    assert BuiltinRules(custom).apply("deploy now", linux).commands == ["make deploy"]


def test_every_rule_has_a_fallback() -> None:
    for rule in BUILTIN_RULES:
        assert "*" in rule.commands
        assert 0 <= rule.confidence <= 1
