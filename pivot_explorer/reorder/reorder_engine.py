"""
ReorderEngine - moves fields between zones and repositions them inside a zone.

All indices taken by the public operations are zone-relative: index 2 in the
row zone is the third row field, whatever the fields of other roles around it.
"""
import logging
from typing import Optional, List, Union

from ..errors import (
    OperationResult,
    FieldIndexError,
    InvalidOperatorError,
    PendingFilterError,
)
from ..field_model import FieldModel
from ..types.pivot_field import (
    PivotField,
    Role,
    RowField,
    ColumnField,
    ValueField,
    StagedFilter,
    FILTER_OPERATORS,
    DEFAULT_AGGREGATOR,
)

logger = logging.getLogger(__name__)


class ReorderEngine:
    """
    Drag-and-drop state machine over a FieldModel.

    Dropping a field on the filter zone does not create a filter right away:
    the field is staged in ``pending`` until ``commit_filter`` supplies an
    operator and value, or ``cancel_pending`` puts it back where it was.
    """

    def __init__(self, model: FieldModel, default_aggregator: str = DEFAULT_AGGREGATOR):
        self.model = model
        self.default_aggregator = default_aggregator
        self.pending: Optional[StagedFilter] = None
        model.on_replace(self.clear_pending)

    @property
    def fields(self) -> List[PivotField]:
        return self.model.fields

    def zone(self, role: Union[Role, str]) -> List[PivotField]:
        return self.model.configuration.by_role(role)

    def move_between_zones(
        self,
        field_index: int,
        source_role: Union[Role, str],
        target_role: Union[Role, str],
    ) -> OperationResult:
        source_role, target_role = Role(source_role), Role(target_role)
        if source_role == target_role:
            return self.reorder_within_zone(field_index, -1, source_role)

        positions = self.model.configuration.role_positions(source_role)
        if not 0 <= field_index < len(positions):
            return self._reject(FieldIndexError(field_index, len(positions), source_role.value))
        if target_role == Role.FILTER and self.pending is not None:
            return self._reject(PendingFilterError(f"'{self.pending.field}' is still waiting for a filter condition"))

        absolute = positions[field_index]
        moving = self.fields.pop(absolute)

        if target_role == Role.FILTER:
            self.pending = StagedFilter(moving.field, origin=moving, origin_index=absolute)
            logger.debug("Staged %s as a pending filter", moving.field)
        else:
            self._insert_at_zone_end(self._convert(moving, target_role))

        self.model.notify()
        return OperationResult.success()

    def reorder_within_zone(
        self,
        source_index: int,
        before_index: int,
        role: Union[Role, str],
    ) -> OperationResult:
        """
        Move the ``source_index``-th field of ``role`` in front of the field
        currently at ``before_index``. -1 or an index past the end appends
        to the end of the zone.
        """
        role = Role(role)
        positions = self.model.configuration.role_positions(role)
        if not 0 <= source_index < len(positions):
            return self._reject(FieldIndexError(source_index, len(positions), role.value))
        if before_index < -1:
            return self._reject(FieldIndexError(before_index, len(positions), role.value))
        if before_index == source_index:
            return OperationResult.success()

        source_abs = positions[source_index]
        moving = self.fields.pop(source_abs)

        if before_index == -1 or before_index >= len(positions):
            remaining = self.model.configuration.role_positions(role)
            target = remaining[-1] + 1 if remaining else source_abs
        else:
            target = positions[before_index]
            if target > source_abs:
                target -= 1

        self.fields.insert(target, moving)
        self.model.notify()
        return OperationResult.success()

    def stage_filter(self, field: str) -> OperationResult:
        """Stage a field dropped straight from the catalog onto the filter zone."""
        if self.pending is not None:
            return self._reject(PendingFilterError(f"'{self.pending.field}' is still waiting for a filter condition"))
        self.pending = StagedFilter(field)
        return OperationResult.success()

    def commit_filter(self, operator: str, value: str) -> OperationResult:
        if self.pending is None:
            return self._reject(PendingFilterError("No field is waiting for a filter condition"))
        if operator not in FILTER_OPERATORS:
            return self._reject(InvalidOperatorError(operator))

        self._insert_at_zone_end(self.pending.commit(operator, value))
        self.pending = None
        self.model.notify()
        return OperationResult.success()

    def cancel_pending(self) -> OperationResult:
        if self.pending is None:
            return self._reject(PendingFilterError("No field is waiting for a filter condition"))

        staged, self.pending = self.pending, None
        if staged.origin is not None:
            self.fields.insert(min(staged.origin_index, len(self.fields)), staged.origin)
            self.model.notify()
        return OperationResult.success()

    def clear_pending(self):
        """Drop a staged filter without restoring it; its origin belongs to a configuration that is gone."""
        if self.pending is not None:
            logger.debug("Dropping pending filter on %s", self.pending.field)
        self.pending = None

    def _convert(self, moving: PivotField, target_role: Role) -> PivotField:
        if target_role == Role.ROW:
            return RowField(moving.field)
        if target_role == Role.COLUMN:
            return ColumnField(moving.field)
        aggregators = getattr(moving, "aggregators", None) or (self.default_aggregator,)
        return ValueField(moving.field, tuple(aggregators))

    def _insert_at_zone_end(self, new_field: PivotField):
        positions = self.model.configuration.role_positions(new_field.role)
        if positions:
            self.fields.insert(positions[-1] + 1, new_field)
        else:
            self.fields.append(new_field)

    @staticmethod
    def _reject(error) -> OperationResult:
        logger.warning("Ignoring reorder: %s", error)
        return OperationResult.failure(error)
