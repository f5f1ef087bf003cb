# realme

`realme` gathers configuration from several places (TOML, YAML, JSON and INI
text held in files or strings, environment variables, command-line style
option strings and plain Python objects) and merges it into one tree that you
query by dotted path.

## Installation

```
pip install realme
```

Python 3.11 or newer is required. The package depends on `pyyaml` (YAML
parsing) and `watchdog` (watching files for changes).

## Concepts

* **Parsers** turn raw input into nested tables, lists and scalars.
  `realme.parsers` has `TomlParser`, `YamlParser`, `JsonParser`, `IniParser`,
  `EnvParser` and `SerParser`; `realme.cmd` has `CmdParser`. Any object with a
  `parse(args)` method will do (the `realme.parsers.Parser` protocol).
* **Sources** (`realme.sources`) say where the input comes from:
  `FileSource(path, parser)`, `StringSource(buffer, parser)`,
  `EnvSource(prefix)`, `CmdSource(options)` and `SerSource(obj)`.
  `EnvSource` and `CmdSource` use `EnvParser` and `CmdParser` unless another
  parser is given. `SerSource` accepts dicts, lists, tuples, sets, dataclasses
  and named tuples. A failing parser is reported as `ParseError`, an unreadable
  file as `ReadFileError`.
* **Adaptors** (`realme.adaptor.Adaptor`) wrap a source and carry a
  `priority` (0 to 255; higher priorities are merged later and win), a
  `watch` flag and an optional `profile` such as `"dev"` or `"prod"`.
  `file_adaptor(path, parser, priority, profile)` and
  `toml_adaptor(path, priority, profile)` are shortcuts for file sources.
* **Builder** (`realme.builder.RealmeBuilder`) collects adaptors with
  `load()`, selects a profile with `profile()`, keeps only the adaptors
  without a profile or with the selected one, sorts them by priority and
  merges their tables into a `realme.core.Realme`. A source that yields
  nothing (`None`, e.g. an empty YAML document) is skipped; one that yields
  anything other than a table raises `BuildError`.

## Usage

```python
from realme.adaptor import Adaptor
from realme.core import Realme
from realme.parsers import TomlParser
from realme.sources import StringSource

CONFIG = """
[database]
server = "192.168.1.1"
ports = [8001, 8002, 8003]
"""

config = (
    Realme.builder()
    .load(Adaptor(StringSource(CONFIG, TomlParser())))
    .build()
)

config.get("database.server")         # "192.168.1.1"
config.get("database.ports[0]")       # 8001
config.get("database.missing")        # None
config.get_as("database.ports", list[int])
config.set("database.server", "192.168.1.2")
```

* `get(key)` returns the value under a key such as `a.b[0].c`, or `None`.
* `get_as(key, target)` converts the value to `target` (for example `int`,
  `list[str]`, `str | None`, an `Enum` or a dataclass) and returns `None` if
  the key is missing or the value does not fit.
* `try_deserialize(target)` converts the whole configuration, raising
  `DeserializeError` when it does not fit.
* `set(key, value)` stores a value, creating tables along the way; an invalid
  key raises `SetValueError`.
* `merge(other)` lays another `Realme`'s values on top of this one.
* `reload()` rebuilds from the same adaptors and lays the values stored with
  `set` back on top, so they survive.

`realme.core.deep_merge(target, overlay)` is the merge used throughout:
tables merge key by key, anything else in the overlay replaces what was there.

### Profiles and priorities

```python
from realme.adaptor import file_adaptor, toml_adaptor
from realme.builder import RealmeBuilder
from realme.parsers import TomlParser

config = (
    RealmeBuilder()
    .load(toml_adaptor("config/default.toml"))
    .load(file_adaptor("config/dev.toml", TomlParser(), 1, "dev"))
    .load(file_adaptor("config/prod.toml", TomlParser(), 1, "prod"))
    .profile("dev")
    .build()
)
```

Selecting a profile that no adaptor carries raises `realme.errors.BuildError`.

### Environment variables

`EnvSource("APP_")` collects every variable whose name starts with `APP_`
(ignoring ASCII case), removes the prefix and lower-cases the rest, so
`APP_NAME=MyApp` becomes `{"name": "MyApp"}`. All values are strings.

### Command-line style options

`CmdParser` reads strings such as

```
age=30, name.first=John, skills=[Go; Rust; Python], quote="Hello, World"
```

Dotted keys become nested tables, `[a; b]` becomes a list (lists may nest),
and double quotes let a value contain commas. Every leaf value is a string,
and parsing stops quietly at the first part that does not fit.

### INI files

`IniParser` gives a table of sections, each a table of strings. Keys that
appear before the first section header are ignored.

### Watching files

Create the adaptor with `watch=True` and build with
`RealmeBuilder.shared_build()`:

```python
from realme.adaptor import Adaptor
from realme.builder import RealmeBuilder
from realme.parsers import TomlParser
from realme.sources import FileSource

with (
    RealmeBuilder()
    .load(Adaptor(FileSource("config.toml", TomlParser()), watch=True))
    .shared_build()
) as shared:
    with shared.read() as config:
        print(config.get("changed_time"))
```

The returned `SharedRealme` reloads itself in a background thread when a
watched file changes, at most once a second. `read()` and `write()` are
context managers that hold its lock while giving access to the current
`Realme`; `close()` (or leaving the `with` block) stops watching. If a
reload fails, the error is kept in `SharedRealme.error` and reloading stops.
Only file sources can be watched.

## Errors

All errors derive from `realme.errors.RealmeError`. The specific ones are
`ParseError`, `BuildError`, `ReadFileError`, `SetValueError`,
`DeserializeError`, `SerializeError`, `WatcherError`, `CastError`,
`ExprError` and `LockError`.

## What it does not do

* There is no command-line program; the package is a library only.
* File contents are parsed as they are: there is no template or placeholder
  substitution (such as reading environment variables inside a file).
* Only TOML, YAML, JSON, INI, environment variables, command-line style
  strings and Python objects are read; other formats need a parser of your own.
* Configuration is not validated beyond what `get_as` and `try_deserialize`
  check when converting to a type.