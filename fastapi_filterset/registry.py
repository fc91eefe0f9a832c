"""Registry of named filters and the builders that turn their values into predicates."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from sqlalchemy import ColumnElement

from fastapi_filterset.exceptions import UnknownFilterError, ValidationError
from fastapi_filterset.normalizers import Normalizer, as_list, is_blank

# A builder receives the normalized value and returns a boolean clause, or None for "no filter"
FilterBuilderFn = Callable[[Any], Optional[ColumnElement[bool]]]


@dataclass(frozen=True)
class FilterSpec:
    """
    Declaration of one named filter.

    Attributes:
        name: Filter name, unique within a registry
        builder: Callable turning the normalized value into a predicate (or None)
        normalizer: Validation/normalization rule run on each raw value first
        multiple: If True, the filter accepts a scalar or a collection and the
            builder always receives a list
        description: Human-readable description
    """

    name: str
    builder: FilterBuilderFn
    normalizer: Optional[Normalizer] = None
    multiple: bool = False
    description: Optional[str] = None

    def normalize(self, raw: Any) -> Any:
        """
        Run the normalizer over a non-blank raw value.

        Raises:
            ValidationError: If the normalizer rejects the value
        """
        items = as_list(raw)
        if not self.multiple and len(items) > 1:
            raise ValidationError(self.name, raw, "expected a single value")
        try:
            if self.normalizer is not None:
                items = [self.normalizer(item) for item in items]
        except (ValueError, TypeError) as e:
            raise ValidationError(self.name, raw, str(e)) from e
        if self.multiple:
            return items
        return items[0]

    def build(self, raw: Any) -> Optional[ColumnElement[bool]]:
        """
        Build this filter's predicate for a raw value.

        Blank values short-circuit to None before the normalizer or the
        builder run. A ValueError from the builder is reported as a
        ValidationError.
        """
        if is_blank(raw):
            return None
        value = self.normalize(raw)
        try:
            return self.builder(value)
        except ValueError as e:
            raise ValidationError(self.name, raw, str(e)) from e


class FilterRegistry:
    """
    Maps filter names to FilterSpecs.

    Registries are populated once at startup and only read afterwards.

    Example:
        registry = FilterRegistry()
        registry.register("with_country_id", any_of(Student.country_id),
                          normalizer=to_int, multiple=True)

        @registry.filter("with_created_at_gte", normalizer=to_datetime)
        def _created_after(value):
            return Student.created_at >= value
    """

    def __init__(self) -> None:
        self._specs: Dict[str, FilterSpec] = {}

    def register(
        self,
        name: str,
        builder: FilterBuilderFn,
        *,
        normalizer: Optional[Normalizer] = None,
        multiple: bool = False,
        description: Optional[str] = None,
        replace: bool = False,
    ) -> FilterSpec:
        """
        Register a named filter.

        Args:
            name: Filter name
            builder: Callable with signature (value) -> predicate or None
            normalizer: Optional per-value normalization rule
            multiple: Accept a scalar or a collection, pass a list to the builder
            description: Optional description, reported by describe()
            replace: Allow overriding an existing registration

        Returns:
            FilterSpec: The registered spec

        Raises:
            ValueError: If the name is empty or already registered
        """
        if not name or not name.strip():
            raise ValueError("Filter name must be a non-empty string")
        if name in self._specs and not replace:
            raise ValueError(f"Filter '{name}' is already registered")
        spec = FilterSpec(
            name=name,
            builder=builder,
            normalizer=normalizer,
            multiple=multiple,
            description=description,
        )
        self._specs[name] = spec
        return spec

    def filter(
        self,
        name: str,
        *,
        normalizer: Optional[Normalizer] = None,
        multiple: bool = False,
        description: Optional[str] = None,
    ) -> Callable[[FilterBuilderFn], FilterBuilderFn]:
        """Decorator form of register(); the decorated function is the builder."""

        def decorator(builder: FilterBuilderFn) -> FilterBuilderFn:
            self.register(
                name,
                builder,
                normalizer=normalizer,
                multiple=multiple,
                description=description or builder.__doc__,
            )
            return builder

        return decorator

    def get(self, name: str) -> FilterSpec:
        """
        Look up a filter by name.

        Raises:
            UnknownFilterError: If no filter is registered under ``name``
        """
        spec = self._specs.get(name)
        if spec is None:
            raise UnknownFilterError(name, self._specs)
        return spec

    def build(self, name: str, raw: Any) -> Optional[ColumnElement[bool]]:
        """
        Build the predicate for one named filter.

        Args:
            name: Filter name
            raw: Raw value from the caller

        Returns:
            Optional[ColumnElement[bool]]: Predicate, or None when the value is blank

        Raises:
            UnknownFilterError: If the name is not registered
            ValidationError: If the value is malformed for this filter
        """
        return self.get(name).build(raw)

    @property
    def names(self) -> List[str]:
        return list(self._specs)

    def describe(self) -> Dict[str, Dict[str, Any]]:
        """Summaries of every registered filter, keyed by name."""
        return {
            name: {"multiple": spec.multiple, "description": spec.description}
            for name, spec in self._specs.items()
        }

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[FilterSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)
