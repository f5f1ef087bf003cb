import time
from pathlib import Path

import pytest

from realme.adaptor import Adaptor
from realme.builder import RealmeBuilder, SharedRealme
from realme.errors import BuildError, ReadFileError
from realme.parsers import JsonParser, TomlParser, YamlParser
from realme.sources import FileSource, SerSource, Source, StringSource


@pytest.fixture
def make_toml(tmp_path):
    counter = iter(range(1000))

    def _make(content: str) -> Path:
        path = tmp_path / f"config{next(counter)}.toml"
        path.write_text(content + "\n", encoding="utf-8")
        return path

    return _make


def _toml(path, **kwargs):
    return Adaptor(FileSource(path, TomlParser()), **kwargs)


class _MutableSource(Source):
    def __init__(self, data):
        self.data = data
        self.notify = None

    def parse(self):
        return dict(self.data)

    def watcher(self, notify):
        self.notify = notify
        return None


def _wait_for(predicate, timeout=6.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


def test_build_with_empty_adaptors():
    realme = RealmeBuilder().build()
    assert realme.cache == {}


def test_build_with_single_adaptor(make_toml):
    config = make_toml('[server]\nhost = "localhost"\nport = 8080')
    realme = RealmeBuilder().load(_toml(config, priority=1)).build()
    assert realme.get("server.host") == "localhost"
    assert realme.get("server.port") == 8080


def test_build_with_multiple_adaptors(make_toml):
    config1 = make_toml('[server]\nhost = "localhost"\nport = 8080')
    config2 = make_toml('[database]\nurl = "postgres://localhost/mydb"')
    realme = (
        RealmeBuilder()
        .load(_toml(config1, priority=1))
        .load(_toml(config2, priority=2))
        .build()
    )
    assert realme.get("server.host") == "localhost"
    assert realme.get("database.url") == "postgres://localhost/mydb"


def test_build_with_profile():
    config1 = {"server": {"host": "localhost", "port": 8080}}
    config2 = {"server": {"host": "example.com", "port": 80}}
    realme = (
        RealmeBuilder()
        .load(Adaptor(SerSource(config1), profile="dev"))
        .load(Adaptor(SerSource(config2), profile="prod"))
        .profile("dev")
        .build()
    )
    assert realme.get("server.port") == 8080


def test_build_with_non_existent_profile(make_toml):
    config = make_toml('[server]\nhost = "localhost"\nport = 8080')
    builder = RealmeBuilder().load(_toml(config, priority=1)).profile("non_existent")
    with pytest.raises(BuildError, match="Can not find profile non_existent"):
        builder.build()


def test_build_with_priority_sorting(make_toml):
    low = make_toml('[server]\nhost = "localhost"\nport = 8080')
    high = make_toml("[server]\nport = 9000")
    realme = (
        RealmeBuilder()
        .load(_toml(high, priority=2))
        .load(_toml(low, priority=1))
        .build()
    )
    assert realme.get("server.host") == "localhost"
    assert realme.get("server.port") == 9000


def test_equal_priority_keeps_load_order():
    realme = (
        RealmeBuilder()
        .load(Adaptor(SerSource({"a": 1})))
        .load(Adaptor(SerSource({"a": 2})))
        .build()
    )
    assert realme.get("a") == 2


def test_build_with_invalid_adaptor():
    builder = RealmeBuilder().load(_toml("non_existent.toml", priority=1))
    with pytest.raises(ReadFileError):
        builder.build()


def test_build_with_profile_filtering(make_toml):
    dev = make_toml('[server.dev]\nhost = "localhost"\nport = 3000')
    prod = make_toml('[server.prod]\nhost = "example.com"\nport = 80')
    realme = (
        RealmeBuilder()
        .load(_toml(dev, profile="dev", priority=1))
        .load(_toml(prod, profile="prod", priority=2))
        .profile("dev")
        .build()
    )
    assert realme.get("server.dev.host") == "localhost"
    assert realme.get("server.dev.port") == 3000
    assert realme.get("server.prod.host") is None


def test_build_with_mixed_profile_and_non_profile_adaptors(make_toml):
    common = make_toml('[database]\nurl = "postgres://localhost/mydb"')
    dev = make_toml('[server.dev]\nhost = "localhost"\nport = 3000')
    realme = (
        RealmeBuilder()
        .load(_toml(common, priority=1))
        .load(_toml(dev, profile="dev", priority=2))
        .profile("dev")
        .build()
    )
    assert realme.get("database.url") == "postgres://localhost/mydb"
    assert realme.get("server.dev.host") == "localhost"
    assert realme.get("server.dev.port") == 3000


def test_profiled_adaptors_skipped_without_profile():
    realme = (
        RealmeBuilder()
        .load(Adaptor(SerSource({"a": 1})))
        .load(Adaptor(SerSource({"b": 2}), profile="dev"))
        .build()
    )
    assert realme.cache == {"a": 1}


def test_build_with_array_values(make_toml):
    config = make_toml(
        '[app]\nname = "MyApp"\nversion = "1.0.0"\n'
        'allowed_ips = ["127.0.0.1", "192.168.1.1", "10.0.0.1"]'
    )
    realme = RealmeBuilder().load(_toml(config, priority=1)).build()
    assert realme.get("app.name") == "MyApp"
    assert realme.get("app.version") == "1.0.0"
    assert realme.get("app.allowed_ips[0]") == "127.0.0.1"
    assert realme.get("app.allowed_ips[1]") == "192.168.1.1"
    assert realme.get("app.allowed_ips[2]") == "10.0.0.1"
    assert realme.get("app.allowed_ips[3]") is None


def test_build_with_profile_and_priority(make_toml):
    config1 = make_toml("[server]\nport = 8080\ndebug = true")
    config2 = make_toml("[server]\nport = 9000\ndebug = false")
    config3 = make_toml("[server]\nport = 9000\ndebug = true")
    realme = (
        RealmeBuilder()
        .load(_toml(config1, profile="dev", priority=1))
        .load(_toml(config2, profile="prod", priority=2))
        .load(_toml(config3, profile="prod", priority=3))
        .profile("prod")
        .build()
    )
    assert realme.get("server.port") == 9000
    assert realme.get("server.debug") is True


def test_non_table_result_is_build_error():
    builder = RealmeBuilder().load(Adaptor(StringSource("[1, 2]", JsonParser())))
    with pytest.raises(BuildError, match="not a table"):
        builder.build()


def test_null_result_is_skipped():
    realme = (
        RealmeBuilder()
        .load(Adaptor(StringSource("", YamlParser())))
        .load(Adaptor(SerSource({"a": 1})))
        .build()
    )
    assert realme.cache == {"a": 1}


def test_reload_rereads_files_and_keeps_set_values(make_toml):
    path = make_toml('reload = 1\nname = "Jasper"')
    realme = RealmeBuilder().load(_toml(path)).build()
    realme.set("name", "VJ")
    path.write_text('reload = 2\nname = "Jasper"\n', encoding="utf-8")
    realme.reload()
    assert realme.get_as("reload", int) == 2
    assert realme.get_as("name", str) == "VJ"


def test_shared_build_reads_initial_values():
    shared = RealmeBuilder().load(Adaptor(SerSource({"port": 8080}))).shared_build()
    try:
        with shared.read() as realme:
            assert realme.get("port") == 8080
    finally:
        shared.close()


def test_shared_build_write_changes_value():
    with RealmeBuilder().load(Adaptor(SerSource({"port": 8080}))).shared_build() as shared:
        with shared.write() as realme:
            realme.set("port", 9090)
        with shared.read() as realme:
            assert realme.get("port") == 9090


def test_shared_build_missing_profile_raises():
    builder = RealmeBuilder().load(Adaptor(SerSource({"a": 1}), profile="dev"))
    with pytest.raises(BuildError):
        builder.profile("prod").shared_build()


def test_shared_build_only_watches_when_asked():
    source = _MutableSource({"a": 1})
    with RealmeBuilder().load(Adaptor(source)).shared_build() as shared:
        with shared.read() as realme:
            assert realme.get("a") == 1
    assert source.notify is None


def test_shared_build_reloads_on_notification():
    source = _MutableSource({"changed_time": 1})
    shared = RealmeBuilder().load(Adaptor(source, watch=True)).shared_build()
    try:
        assert isinstance(shared, SharedRealme)
        source.data = {"changed_time": 2}
        source.notify()

        def reloaded():
            with shared.read() as realme:
                return realme.get("changed_time") == 2

        assert _wait_for(reloaded)
        assert shared.error is None
    finally:
        shared.close()


def test_shared_reload_keeps_runtime_values():
    source = _MutableSource({"name": "Jasper", "reload": 1})
    with RealmeBuilder().load(Adaptor(source, watch=True)).shared_build() as shared:
        with shared.write() as realme:
            realme.set("name", "VJ")
        source.data = {"name": "Jasper", "reload": 2}
        source.notify()

        def reloaded():
            with shared.read() as realme:
                return realme.get("reload") == 2

        assert _wait_for(reloaded)
        with shared.read() as realme:
            assert realme.get("name") == "VJ"