"""Benchmark configuration and unit-of-work loading.

Handles:
- The BenchConfig dataclass and its validation.
- Normalizing the units of work a caller passes in.
- Loading benchmark profiles from YAML files.
- Resolving units given as import references or timeit-style statements.
- Parsing inline unit definitions from CLI arguments.
"""

from __future__ import annotations

import functools
import importlib
import textwrap
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Sequence, Union

import yaml

from trialbench.logging import get_logger

log = get_logger("config")

ORDERS = ("random", "inorder", "block")
TIME_UNITS = ("ns", "us", "ms", "s", "relative")

# A check is either the name of a built-in check or a predicate over the
# list of values the units returned (one per unit, in unit order).
CheckSpec = Union[str, Callable[[list[Any]], bool], None]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


class ConfigurationError(ValueError):
    """The benchmark cannot start because its configuration is invalid.

    Raised before any unit of work is invoked.  ``errors`` holds every
    fatal validation error found, not only the first.
    """

    def __init__(self, errors: list[ValidationError]) -> None:
        self.errors = errors
        lines = [f"  {e.field}: {e.message}" for e in errors]
        super().__init__("Invalid benchmark configuration:\n" + "\n".join(lines))


class CheckError(ValueError):
    """The units of work did not return equivalent values."""


# ---------------------------------------------------------------------------
# Units of work
# ---------------------------------------------------------------------------


@dataclass
class Unit:
    """A named zero-argument callable to benchmark."""

    label: str
    fn: Callable[[], Any]
    description: str = ""

    def __post_init__(self) -> None:
        if not self.description:
            self.description = _describe_callable(self.fn)


def _describe_callable(fn: Any) -> str:
    module = getattr(fn, "__module__", None)
    qualname = getattr(fn, "__qualname__", None)
    if module and qualname:
        return f"{module}:{qualname}"
    return repr(fn)


UnitsInput = Union[
    Mapping[str, Callable[[], Any]],
    Iterable[Union[Unit, tuple[str, Callable[[], Any]]]],
]


def normalize_units(units: UnitsInput) -> list[Unit]:
    """Turn a mapping, ``(label, callable)`` pairs or Units into a list of Units.

    Duplicates are kept so validation can report them.
    """
    if isinstance(units, Mapping):
        return [Unit(label=label, fn=fn) for label, fn in units.items()]
    result: list[Unit] = []
    for item in units:
        if isinstance(item, Unit):
            result.append(item)
        else:
            label, fn = item
            result.append(Unit(label=label, fn=fn))
    return result


# ---------------------------------------------------------------------------
# BenchConfig
# ---------------------------------------------------------------------------


@dataclass
class BenchConfig:
    """Resolved configuration for a benchmark run."""

    # Identity
    bench_id: str = ""  # Auto-generated if empty
    name: str = ""
    description: str = ""

    # Trial control
    trials: int = 100  # Measured trials per unit
    warmup: int = 2  # Unreported calls per unit before measuring
    order: str = "random"  # random, inorder, block
    seed: int | None = None  # Schedule seed; None draws from the OS

    # Presentation
    time_unit: str | None = None  # None = pick by magnitude

    # Return value validation
    check: CheckSpec = None

    # Output
    results_dir: Path = field(default_factory=lambda: Path("results"))

    # CLI provenance
    cli_args: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.bench_id:
            self.bench_id = f"bench_{time.strftime('%Y%m%d_%H%M%S')}"

    @property
    def output_dir(self) -> Path:
        """The output directory for this benchmark run."""
        return self.results_dir / self.bench_id

    def to_dict(self) -> dict[str, Any]:
        """The settings recorded in a run's metadata."""
        if callable(self.check):
            check = _describe_callable(self.check)
        else:
            check = self.check
        return {
            "trials": self.trials,
            "warmup": self.warmup,
            "order": self.order,
            "seed": self.seed,
            "time_unit": self.time_unit,
            "check": check,
        }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_config(config: BenchConfig, units: Sequence[Unit]) -> list[ValidationError]:
    """Validate a benchmark configuration against its units.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if not _is_int(config.trials) or config.trials < 1:
        errors.append(
            ValidationError(
                field="trials",
                message=f"Trial count must be a positive integer (got {config.trials!r}).",
            )
        )
    elif config.trials < 5:
        errors.append(
            ValidationError(
                field="trials",
                message=(
                    f"Only {config.trials} trials per unit; quartiles will be "
                    f"dominated by single measurements."
                ),
                severity="warning",
            )
        )

    if not _is_int(config.warmup) or config.warmup < 0:
        errors.append(
            ValidationError(
                field="warmup",
                message=f"Warm-up count must be a non-negative integer (got {config.warmup!r}).",
            )
        )

    if config.order not in ORDERS:
        errors.append(
            ValidationError(
                field="order",
                message=f"Unknown order '{config.order}'. Choose one of: {', '.join(ORDERS)}.",
            )
        )
    elif config.order != "random" and len(units) > 1:
        errors.append(
            ValidationError(
                field="order",
                message=(
                    f"Order '{config.order}' does not randomize trials across units; "
                    f"time-varying conditions can bias the comparison."
                ),
                severity="warning",
            )
        )

    if config.time_unit is not None and config.time_unit not in TIME_UNITS:
        errors.append(
            ValidationError(
                field="time_unit",
                message=(
                    f"Unknown time unit '{config.time_unit}'. "
                    f"Choose one of: {', '.join(TIME_UNITS)}."
                ),
            )
        )

    if config.seed is not None and not _is_int(config.seed):
        errors.append(
            ValidationError(
                field="seed",
                message=f"Seed must be an integer (got {config.seed!r}).",
            )
        )

    if not (config.check is None or config.check == "equal" or callable(config.check)):
        errors.append(
            ValidationError(
                field="check",
                message=f"Check must be 'equal' or a callable (got {config.check!r}).",
            )
        )

    if not units:
        errors.append(
            ValidationError(
                field="units",
                message="No units of work to benchmark.",
            )
        )

    seen: set[str] = set()
    for unit in units:
        if not isinstance(unit.label, str) or not unit.label.strip():
            errors.append(
                ValidationError(
                    field="units",
                    message=f"Unit labels must be non-empty strings (got {unit.label!r}).",
                )
            )
            continue
        if unit.label in seen:
            errors.append(
                ValidationError(
                    field=f"units.{unit.label}",
                    message=f"Duplicate unit label '{unit.label}'.",
                )
            )
        seen.add(unit.label)
        if not callable(unit.fn):
            errors.append(
                ValidationError(
                    field=f"units.{unit.label}",
                    message=f"Unit '{unit.label}' is not callable ({type(unit.fn).__name__}).",
                )
            )

    return errors


def raise_for_errors(errors: list[ValidationError]) -> None:
    """Log warnings and raise ConfigurationError if any error is fatal."""
    for w in errors:
        if w.severity == "warning":
            log.warning("Config warning: %s: %s", w.field, w.message)
    fatal = [e for e in errors if e.severity == "error"]
    if fatal:
        raise ConfigurationError(fatal)


# ---------------------------------------------------------------------------
# Result checks
# ---------------------------------------------------------------------------


def all_equal(values: list[Any]) -> bool:
    """True if every value compares equal to the first."""
    return all(_values_equal(values[0], v) for v in values[1:])


def _values_equal(a: Any, b: Any) -> bool:
    result = a == b
    # Array-like types return element-wise results from ==.
    if isinstance(result, bool):
        return result
    all_method = getattr(result, "all", None)
    if callable(all_method):
        return bool(all_method())
    return bool(result)


def resolve_check(check: CheckSpec) -> Callable[[list[Any]], bool] | None:
    """Map a check spec to a predicate (None means no check)."""
    if check is None:
        return None
    if check == "equal":
        return all_equal
    if callable(check):
        return check
    raise ValueError(f"Unknown check: {check!r}")


# ---------------------------------------------------------------------------
# Unit resolution
# ---------------------------------------------------------------------------


def resolve_reference(ref: str) -> Any:
    """Import ``"package.module:attr.path"`` and return the attribute.

    Raises:
        ValueError: If the reference is malformed or cannot be resolved.
    """
    if ":" not in ref:
        raise ValueError(f"Invalid reference '{ref}'. Expected 'module:attribute'.")
    module_name, attr_path = ref.split(":", 1)
    if not module_name or not attr_path:
        raise ValueError(f"Invalid reference '{ref}'. Expected 'module:attribute'.")

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ValueError(f"Cannot import module '{module_name}': {exc}") from exc

    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise ValueError(f"'{module_name}' has no attribute '{attr_path}'") from exc
    return obj


def resolve_unit(
    label: str,
    ref: str,
    *,
    args: Sequence[Any] = (),
    kwargs: Mapping[str, Any] | None = None,
) -> Unit:
    """Build a Unit from an import reference, binding optional arguments."""
    target = resolve_reference(ref)
    if not callable(target):
        raise ValueError(f"'{ref}' is not callable")
    fn = functools.partial(target, *args, **(kwargs or {})) if args or kwargs else target
    return Unit(label=label, fn=fn, description=ref)


def compile_statement(label: str, stmt: str, setup: str = "") -> Unit:
    """Compile a timeit-style statement into a zero-argument Unit.

    *setup* runs once, immediately, in a fresh namespace; *stmt* is
    compiled as a function over that namespace.  A single expression
    becomes the unit's return value so result checks can see it; a
    block of statements returns None.

    Raises:
        ValueError: If either piece of code fails to compile or setup raises.
    """
    namespace: dict[str, Any] = {}
    filename = f"<trialbench:{label}>"
    stmt = textwrap.dedent(stmt).strip()
    if not stmt:
        raise ValueError(f"Unit '{label}' has an empty statement")

    if setup:
        try:
            exec(compile(textwrap.dedent(setup), f"{filename}:setup", "exec"), namespace)
        except SyntaxError as exc:
            raise ValueError(f"Setup for unit '{label}' does not compile: {exc}") from exc
        except Exception as exc:  # noqa: BLE001
            raise ValueError(f"Setup for unit '{label}' failed: {exc!r}") from exc

    try:
        compile(stmt, filename, "eval")
        # Closing paren on its own line so a trailing comment cannot swallow it.
        source = f"def __unit__():\n    return (\n{stmt}\n    )\n"
    except SyntaxError:
        source = "def __unit__():\n" + textwrap.indent(stmt, "    ") + "\n"

    try:
        exec(compile(source, filename, "exec"), namespace)
    except SyntaxError as exc:
        raise ValueError(f"Statement for unit '{label}' does not compile: {exc}") from exc

    return Unit(label=label, fn=namespace["__unit__"], description=stmt)


def parse_inline_unit(spec: str) -> tuple[str, str]:
    """Split ``"label=value"`` from the CLI into ``(label, value)``.

    The value is an import reference for ``--unit`` and a statement for
    ``--stmt``; only the first ``=`` separates, so statements may
    contain ``=`` themselves.
    """
    if "=" not in spec:
        raise ValueError(f"Invalid unit spec: '{spec}'. Expected format: 'label=value'")
    label, value = spec.split("=", 1)
    label = label.strip()
    if not label:
        raise ValueError(f"Unit label cannot be empty in '{spec}'.")
    if not value.strip():
        raise ValueError(f"Unit '{label}' has no value.")
    return label, value.strip()


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load a benchmark profile from a YAML file.

    Profile format::

        name: "sqrt vs pow"
        trials: 200
        warmup: 2
        order: random
        seed: 1234
        time_unit: us
        check: equal

        units:
          sqrt:
            callable: "math:sqrt"
            args: [2.0]
          pow_half:
            stmt: "x ** 0.5"
            setup: "x = 2.0"

    Returns:
        The parsed YAML as a dict.
    """
    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    data = yaml.safe_load(profile_path.read_text())

    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a YAML mapping, got {type(data).__name__}")

    return data


def config_from_profile(
    profile_data: dict[str, Any],
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> tuple[BenchConfig, list[Unit]]:
    """Build a BenchConfig and its units from a parsed YAML profile.

    CLI overrides take precedence over profile values when they are
    not None.

    Returns:
        Tuple of (BenchConfig, list of Unit) in profile order.
    """
    cli = {k: v for k, v in (cli_overrides or {}).items() if v is not None}

    def _pick(key: str, default: Any) -> Any:
        if key in cli:
            return cli[key]
        return profile_data.get(key, default)

    config = BenchConfig(
        name=_pick("name", ""),
        description=profile_data.get("description", ""),
        trials=_pick("trials", 100),
        warmup=_pick("warmup", 2),
        order=_pick("order", "random"),
        seed=_pick("seed", None),
        time_unit=_pick("time_unit", None),
        check=_pick("check", None),
    )
    results_dir = _pick("results_dir", None)
    if results_dir:
        config.results_dir = Path(results_dir)

    units_data = profile_data.get("units", {})
    if not isinstance(units_data, dict):
        raise ValueError("Profile 'units' must be a mapping of label -> definition")

    setup_default = profile_data.get("setup", "")
    units: list[Unit] = []
    for label, unit_data in units_data.items():
        label = str(label)
        if isinstance(unit_data, str):
            unit_data = {"callable": unit_data}
        if not isinstance(unit_data, dict):
            raise ValueError(f"Unit '{label}' must be a mapping, got {type(unit_data).__name__}")

        if "callable" in unit_data and "stmt" in unit_data:
            raise ValueError(f"Unit '{label}' sets both 'callable' and 'stmt'; choose one.")
        if "callable" in unit_data:
            units.append(
                resolve_unit(
                    label,
                    unit_data["callable"],
                    args=unit_data.get("args", ()),
                    kwargs=unit_data.get("kwargs"),
                )
            )
        elif "stmt" in unit_data:
            units.append(
                compile_statement(label, unit_data["stmt"], unit_data.get("setup", setup_default))
            )
        else:
            raise ValueError(f"Unit '{label}' needs either 'callable' or 'stmt'.")

    return config, units
