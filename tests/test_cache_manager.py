import json

from aicli.cache.cache_manager import CacheManager
from aicli.utils.schema import OSInfo


class _Clock:
    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def tick(self, ms: int = 1) -> None:
        self.now += ms


def test_round_trip(tmp_path, linux) -> None:
    cm = CacheManager(tmp_path / "cache.json")
    assert cm.get("list files", linux) is None
    cm.set("list files", linux, False, "ls -la")
    assert cm.get("list files", linux) == "ls -la"
    # mode is part of the key
    assert cm.get("list files", linux, learning_mode=True) is None


def test_file_layout(tmp_path, linux) -> None:
    clock = _Clock(5_000)
    path = tmp_path / "cache.json"
    cm = CacheManager(path, ttl_seconds=60, clock=clock)
    cm.set("list files", linux, False, "ls -la")
    data = json.loads(path.read_text(encoding="utf-8"))
    key = cm.cache_key("list files", linux, False)
    assert data == {key: {"response": "ls -la", "timestamp": 5_000, "expiresAt": 65_000}}


def test_expired_entry_is_removed(tmp_path, linux) -> None:
    clock = _Clock()
    path = tmp_path / "cache.json"
    cm = CacheManager(path, ttl_seconds=10, clock=clock)
    cm.set("show ip", linux, False, "ip addr show")

    clock.tick(10_000)
    assert cm.get("show ip", linux) == "ip addr show"

    clock.tick(1)
    assert cm.get("show ip", linux) is None
    assert json.loads(path.read_text(encoding="utf-8")) == {}


def test_eviction_drops_oldest(tmp_path, linux) -> None:
    clock = _Clock()
    cm = CacheManager(tmp_path / "cache.json", max_entries=3, clock=clock)
    for i in range(5):
        cm.set(f"q{i}", linux, False, f"echo {i}")
        clock.tick()

    assert len(cm) == 3
    assert cm.get("q0", linux) is None
    assert cm.get("q1", linux) is None
    assert [cm.get(f"q{i}", linux) for i in (2, 3, 4)] == ["echo 2", "echo 3", "echo 4"]


def test_default_bound_evicts_one_entry_at_a_time(tmp_path, linux) -> None:
    clock = _Clock()
    cm = CacheManager(tmp_path / "cache.json", clock=clock)
    assert cm.max_entries == 500
    for i in range(501):
        cm.set(f"q{i}", linux, False, f"echo {i}")
        clock.tick()

    assert len(cm) == 500
    assert cm.get("q0", linux) is None
    assert cm.get("q1", linux) == "echo 1"
    assert cm.get("q500", linux) == "echo 500"


def test_newest_insert_can_be_the_one_evicted(tmp_path, linux) -> None:
    # a clock running backwards stamps each new entry as the oldest
    clock = _Clock(10_000)
    cm = CacheManager(tmp_path / "cache.json", max_entries=3, clock=clock)
    for i in range(3):
        cm.set(f"q{i}", linux, False, f"echo {i}")
        clock.tick(-1)
    cm.set("late", linux, False, "echo late")

    assert len(cm) == 3
    assert cm.get("late", linux) is None
    assert [cm.get(f"q{i}", linux) for i in range(3)] == ["echo 0", "echo 1", "echo 2"]


def test_overwrite_refreshes_timestamp(tmp_path, linux) -> None:
    clock = _Clock()
    cm = CacheManager(tmp_path / "cache.json", max_entries=2, clock=clock)
    cm.set("a", linux, False, "echo a")
    clock.tick()
    cm.set("b", linux, False, "echo b")
    clock.tick()
    cm.set("a", linux, False, "echo a2")
    clock.tick()
    cm.set("c", linux, False, "echo c")

    assert cm.get("b", linux) is None
    assert cm.get("a", linux) == "echo a2"
    assert cm.get("c", linux) == "echo c"


def test_corrupt_store_is_a_miss_and_gets_replaced(tmp_path, linux, caplog) -> None:
    path = tmp_path / "cache.json"
    path.write_text("{not json", encoding="utf-8")
    cm = CacheManager(path)

    assert cm.get("list files", linux) is None
    assert "cache read error" in caplog.text

    cm.set("list files", linux, False, "ls")
    assert cm.get("list files", linux) == "ls"


def test_non_object_store_is_a_miss(tmp_path, linux) -> None:
    path = tmp_path / "cache.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert CacheManager(path).get("x", linux) is None


def test_unwritable_location_does_not_raise(tmp_path, linux) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    cm = CacheManager(blocker / "sub" / "cache.json")
    cm.set("x", linux, False, "echo x")
    assert cm.get("x", linux) is None


def test_keys_are_deterministic(tmp_path, linux) -> None:
    a = CacheManager(tmp_path / "a.json", model_id="gemini:flash", prompt_version="3")
    b = CacheManager(tmp_path / "b.json", model_id="gemini:flash", prompt_version="3")
    assert a.cache_key("list files", linux, False) == b.cache_key("list files", linux, False)
    assert len(a.cache_key("list files", linux, False)) == 64

    other_model = CacheManager(tmp_path / "c.json", model_id="openai:gpt", prompt_version="3")
    assert other_model.cache_key("list files", linux, False) != a.cache_key("list files", linux, False)

    zsh = OSInfo(platform="linux", arch="x86_64", shell="zsh")
    assert a.cache_key("list files", zsh, False) != a.cache_key("list files", linux, False)
    assert a.cache_key("list files", linux, True) != a.cache_key("list files", linux, False)


def test_clear_removes_file(tmp_path, linux) -> None:
    path = tmp_path / "cache.json"
    cm = CacheManager(path)
    cm.set("x", linux, False, "echo x")
    assert path.exists()
    cm.clear()
    assert not path.exists()
    cm.clear()
