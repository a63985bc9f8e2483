"""Exception hierarchy shared by every unitgraph component.

Configuration errors are raised while the registry is being wired and are
never caught: they mean the process was assembled incorrectly. Everything
else is a runtime condition the caller may report, retry or skip.
"""


class UnitGraphError(Exception):
    """Base class for all unitgraph errors."""


class ConfigurationError(UnitGraphError):
    """Registry wiring mistake (duplicate or empty registration)."""


class ConfigError(UnitGraphError):
    """Repository configuration file could not be read or has the wrong shape."""


class NoPluginError(UnitGraphError, LookupError):
    """No plugin is registered for the requested key."""

    def __init__(self, kind: str, key: str, what: str = ""):
        self.kind = kind
        self.key = key
        super().__init__(f"no {kind} registered for {what or kind + ' key'} {key!r}")


class NoResolverError(NoPluginError):
    """No resolver is registered for a raw dependency target type."""

    def __init__(self, target_type: str):
        super().__init__("resolver", target_type, "raw dependency target type")


class UnknownVariantError(UnitGraphError, LookupError):
    """A source unit's concrete type was never registered as a variant."""


class InvalidUnitIDError(UnitGraphError, ValueError):
    """A source unit ID string could not be parsed."""


class SandboxError(UnitGraphError):
    """Base class for failures of a sandboxed tool invocation."""

    def __init__(self, message: str, label: str = ""):
        self.label = label
        prefix = f"[{label}] " if label else ""
        super().__init__(f"{prefix}{message}")


class ToolFailedError(SandboxError):
    """The tool exited non-zero (or timed out). Usually worth a retry."""

    def __init__(self, returncode: int, stderr: str, label: str = "", stage: str = "invocation"):
        self.returncode = returncode
        self.stderr = stderr
        self.stage = stage
        detail = stderr.strip() or "(no stderr)"
        super().__init__(f"{stage} exited with code {returncode}: {detail}", label)


class UnusableOutputError(SandboxError):
    """The tool ran but its raw output could not be normalized."""

    def __init__(self, cause: BaseException, excerpt: str = "", label: str = ""):
        self.cause = cause
        self.excerpt = excerpt
        message = f"unusable tool output: {cause}"
        if excerpt:
            message += f"\noutput began with: {excerpt}"
        super().__init__(message, label)


class SchemaMismatchError(SandboxError):
    """Normalized output did not match the canonical schema."""

    def __init__(self, message: str, label: str = ""):
        super().__init__(f"schema mismatch: {message}", label)


class ValidationError(UnitGraphError):
    """Derived data violated an invariant and was rejected as a whole."""


class DuplicateSymbolPathError(ValidationError):
    """Two symbols in one grapher output share a key."""

    def __init__(self, first, second):
        self.first = first
        self.second = second
        super().__init__(
            f"duplicate path in symbols output: {second.path!r}\n"
            f"symbol 1: {first!r}\n"
            f"symbol 2: {second!r}"
        )


class DuplicateUnitError(ValidationError):
    """Two scanned source units share a name within one variant."""


class RuleMakerError(UnitGraphError):
    """A registered rule maker failed while assembling the rule graph."""

    def __init__(self, name: str, cause: BaseException):
        self.name = name
        self.cause = cause
        super().__init__(f"rule maker {name}: {cause}")
