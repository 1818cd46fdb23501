"""
FieldModel - editing operations over a PivotConfiguration.
"""
import logging
from typing import Optional, List, Callable, Union

from .errors import (
    OperationResult,
    FieldIndexError,
    RoleMismatchError,
    InvalidOperatorError,
)
from .types.pivot_field import (
    PivotConfiguration,
    PivotField,
    Role,
    ViewMode,
    ValueField,
    FilterField,
    FILTER_OPERATORS,
    default_fields,
    make_field,
)

logger = logging.getLogger(__name__)

ChangeListener = Callable[[PivotConfiguration], None]


class FieldModel:
    """
    Mutates a PivotConfiguration in place.

    Listeners registered with ``subscribe`` run after every applied mutation;
    re-encoding and auto-refresh hang off them.
    """

    def __init__(self, configuration: Optional[PivotConfiguration] = None):
        self.configuration = configuration if configuration is not None else PivotConfiguration.default()
        self._listeners: List[ChangeListener] = []
        self._replace_listeners: List[Callable[[], None]] = []

    @property
    def fields(self) -> List[PivotField]:
        return self.configuration.fields

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_replace(self, listener: Callable[[], None]):
        """Register ``listener`` to run before listeners are notified of a reset or replace."""
        self._replace_listeners.append(listener)

    def notify(self):
        for listener in list(self._listeners):
            listener(self.configuration)

    def add_field(
        self,
        field: str,
        role: Union[Role, str],
        aggregators: Optional[List[str]] = None,
        operator: Optional[str] = None,
        value: Optional[str] = None,
    ) -> OperationResult:
        if operator is not None and operator not in FILTER_OPERATORS:
            return self._reject(InvalidOperatorError(operator))
        self.fields.append(make_field(field, role, aggregators, operator, value))
        self.notify()
        return OperationResult.success()

    def remove_field(self, index: int) -> OperationResult:
        if not 0 <= index < len(self.fields):
            return self._reject(FieldIndexError(index, len(self.fields)))
        del self.fields[index]
        self.notify()
        return OperationResult.success()

    def update_aggregators(self, index: int, aggregators: List[str]) -> OperationResult:
        """Replace a value field's aggregators. Keeping the list non-empty is up to the caller."""
        current = self._get(index)
        if isinstance(current, OperationResult):
            return current
        if not isinstance(current, ValueField):
            return self._reject(RoleMismatchError(index, Role.VALUE.value, current.role.value))
        self.fields[index] = ValueField(current.field, tuple(aggregators))
        self.notify()
        return OperationResult.success()

    def update_filter(self, index: int, operator: str, value: str) -> OperationResult:
        current = self._get(index)
        if isinstance(current, OperationResult):
            return current
        if not isinstance(current, FilterField):
            return self._reject(RoleMismatchError(index, Role.FILTER.value, current.role.value))
        if operator not in FILTER_OPERATORS:
            return self._reject(InvalidOperatorError(operator))
        self.fields[index] = FilterField(current.field, operator, value)
        self.notify()
        return OperationResult.success()

    def reset(self) -> OperationResult:
        self.configuration.fields[:] = default_fields()
        self._replaced()
        self.notify()
        return OperationResult.success()

    def replace(self, configuration: PivotConfiguration) -> OperationResult:
        """Swap in a loaded configuration wholesale, keeping listeners."""
        self.configuration.fields[:] = list(configuration.fields)
        self.configuration.is_relative = configuration.is_relative
        self.configuration.view_mode = configuration.view_mode
        self._replaced()
        self.notify()
        return OperationResult.success()

    def set_relative(self, is_relative: bool) -> OperationResult:
        self.configuration.is_relative = bool(is_relative)
        self.notify()
        return OperationResult.success()

    def set_view_mode(self, view_mode: Union[ViewMode, str]) -> OperationResult:
        self.configuration.view_mode = ViewMode(view_mode)
        self.notify()
        return OperationResult.success()

    def _replaced(self):
        for listener in list(self._replace_listeners):
            listener()

    def _get(self, index: int):
        if not 0 <= index < len(self.fields):
            return self._reject(FieldIndexError(index, len(self.fields)))
        return self.fields[index]

    @staticmethod
    def _reject(error) -> OperationResult:
        logger.warning("Ignoring field edit: %s", error)
        return OperationResult.failure(error)
