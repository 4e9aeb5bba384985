"""AnalysisRecord: the persisted multi-factor analysis aggregate.

A record owns its attributes, scenarios, pairwise matrix and weight source,
and always holds results consistent with them. Every mutation recomputes
results synchronously, bumps the revision counter and, when a saver is
attached, schedules a debounced save.

State machine:
    UNINITIALIZED -> DIRTY -> LOADED        (create)
    LOADED -> DIRTY -> SAVING -> LOADED     (edit, save)
    any live state -> DELETED               (terminal)
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter, ValidationError

from mfa.analysis.defaults import default_analysis_template
from mfa.models.analysis import (
    Attribute,
    DerivedWeights,
    ManualWeights,
    Scenario,
    ScenarioResult,
    WeightSource,
)
from mfa.persistence.store import utc_now_iso
from mfa.scoring.engine import ShapeMismatchError, compute_results
from mfa.scoring.pairwise import InvalidJudgmentError, PairwiseMatrix
from mfa.scoring.ranker import top_recommendation
from mfa.scoring.weights import clamp_weight_edit, derive_weights, weights_total

if TYPE_CHECKING:
    from mfa.persistence.saver import DebouncedSaver
    from mfa.persistence.store import AnalysisStore

logger = logging.getLogger(__name__)

MIN_RATING = 0
MAX_RATING = 100

_ATTRIBUTES_ADAPTER: TypeAdapter[list[Attribute]] = TypeAdapter(list[Attribute])
_SCENARIOS_ADAPTER: TypeAdapter[list[Scenario]] = TypeAdapter(list[Scenario])
_RESULTS_ADAPTER: TypeAdapter[list[ScenarioResult]] = TypeAdapter(list[ScenarioResult])
_MATRIX_ADAPTER: TypeAdapter[list[list[float]]] = TypeAdapter(list[list[float]])
_WEIGHT_SOURCE_ADAPTER: TypeAdapter[ManualWeights | DerivedWeights] = TypeAdapter(WeightSource)


class RecordState(StrEnum):
    """Lifecycle state of an AnalysisRecord."""

    UNINITIALIZED = "UNINITIALIZED"
    LOADED = "LOADED"
    DIRTY = "DIRTY"
    SAVING = "SAVING"
    DELETED = "DELETED"


class RatingBoundsError(ValueError):
    """Raised when a rating is not an integer between 0 and 100."""

    def __init__(self, rating: object) -> None:
        self.rating = rating
        super().__init__(f"Rating must be an integer {MIN_RATING}-{MAX_RATING}, got {rating!r}")


class MalformedRecordError(Exception):
    """Raised when a stored document cannot be turned into a record.

    Attributes:
        field: Name of the offending document field.
        reason: Human-readable validation failure.
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Malformed analysis field '{field}': {reason}")


class UnknownEntityError(LookupError):
    """Raised when an attribute, scenario or rating position does not exist."""

    def __init__(self, kind: str, identifier: object) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"Unknown {kind} {identifier!r}")


class RecordStateError(Exception):
    """Raised when an operation is not allowed in the record's current state."""


class InvalidNameError(ValueError):
    """Raised when an analysis name is missing or blank."""

    def __init__(self, name: object) -> None:
        self.name = name
        super().__init__(f"Analysis name must be a non-empty string, got {name!r}")


def _validate_name(name: object) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidNameError(name)
    return name.strip()


def _active_weights(attributes: Sequence[Attribute], source: WeightSource) -> list[int]:
    if isinstance(source, DerivedWeights):
        return list(source.weights)
    return [attribute.weight for attribute in attributes]


def _parse_field(
    adapter: TypeAdapter[Any], field: str, value: object, *, strict: bool | None = None
) -> Any:
    """Validate one stored field. ``strict=None`` defers to the model config."""
    try:
        return adapter.validate_python(value, strict=strict)
    except ValidationError as e:
        raise MalformedRecordError(field, str(e.errors()[0]["msg"])) from e


class AnalysisRecord:
    """Persisted analysis with derived, always-consistent results.

    Not thread-safe. One editor at a time mutates a record; the attached
    saver serializes its writes.
    """

    def __init__(
        self,
        *,
        record_id: str,
        name: str,
        description: str | None,
        attributes: Sequence[Attribute],
        scenarios: Sequence[Scenario],
        matrix: PairwiseMatrix,
        weight_source: WeightSource | None = None,
        created_at: str | None = None,
        updated_at: str | None = None,
        saver: DebouncedSaver | None = None,
    ) -> None:
        """Build a record and compute its results.

        Raises:
            ShapeMismatchError: If the matrix, ratings or weight vector do
                not match the attribute count.
        """
        if matrix.size != len(attributes):
            raise ShapeMismatchError(len(attributes), matrix.size)

        self._id = record_id
        self._name = _validate_name(name)
        self._description = description
        self._attributes = list(attributes)
        self._scenarios = list(scenarios)
        self._matrix = matrix.copy()
        if weight_source is None:
            weight_source = ManualWeights(
                weights=[attribute.weight for attribute in self._attributes]
            )
        self._weight_source: WeightSource = weight_source
        self._results = compute_results(
            self._attributes,
            self._scenarios,
            _active_weights(self._attributes, self._weight_source),
        )
        self._created_at = created_at
        self._updated_at = updated_at
        self._saver = saver
        self._state = RecordState.UNINITIALIZED
        self._revision = 0
        self._last_save_error: str | None = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def new(
        cls,
        name: str,
        description: str | None = None,
        *,
        saver: DebouncedSaver | None = None,
    ) -> AnalysisRecord:
        """Build an unsaved record seeded from the default template."""
        template = default_analysis_template()
        return cls(
            record_id=str(uuid.uuid4()),
            name=name,
            description=description,
            attributes=template.attributes,
            scenarios=template.scenarios,
            matrix=template.matrix,
            saver=saver,
        )

    @classmethod
    def create(
        cls,
        name: str,
        description: str | None,
        store: AnalysisStore,
        *,
        saver: DebouncedSaver | None = None,
    ) -> AnalysisRecord:
        """Create a seeded record and insert it into the store.

        Args:
            name: Analysis name.
            description: Optional free-text description.
            store: Store receiving the new document.
            saver: Optional saver for subsequent edits.

        Returns:
            The stored record in LOADED state.

        Raises:
            InvalidNameError: If the name is blank.
            StoreError: If the store rejects the insert.
        """
        record = cls.new(name, description, saver=saver)
        record._state = RecordState.DIRTY
        stored = store.create(record.to_document())
        record._created_at = stored.get("created_at")
        record._updated_at = stored.get("updated_at")
        record._state = RecordState.LOADED
        logger.info("Created analysis %s (%s)", record.id, record.name)
        return record

    @classmethod
    def from_document(
        cls,
        document: dict[str, Any],
        *,
        saver: DebouncedSaver | None = None,
    ) -> AnalysisRecord:
        """Rebuild a record from a stored document.

        Missing or null attributes, scenarios and matrix fall back to the
        default template. Stored results are validated but never trusted;
        they are recomputed from the inputs.

        Raises:
            MalformedRecordError: If any present field has the wrong type or
                the fields are inconsistent with each other.
        """
        record_id = document.get("id")
        if not isinstance(record_id, str) or not record_id:
            raise MalformedRecordError("id", "must be a non-empty string")
        try:
            name = _validate_name(document.get("name"))
        except InvalidNameError as e:
            raise MalformedRecordError("name", str(e)) from e
        description = document.get("description")
        if description is not None and not isinstance(description, str):
            raise MalformedRecordError("description", "must be a string or null")

        template = default_analysis_template()

        raw_attributes = document.get("attributes")
        attributes = (
            template.attributes
            if raw_attributes is None
            else _parse_field(_ATTRIBUTES_ADAPTER, "attributes", raw_attributes)
        )
        raw_scenarios = document.get("scenarios")
        scenarios = (
            template.scenarios
            if raw_scenarios is None
            else _parse_field(_SCENARIOS_ADAPTER, "scenarios", raw_scenarios)
        )
        if document.get("results") is not None:
            _parse_field(_RESULTS_ADAPTER, "results", document["results"])

        _check_unique(attributes, "attributes")
        _check_unique(scenarios, "scenarios")

        raw_matrix = document.get("matrix")
        if raw_matrix is None:
            matrix = PairwiseMatrix(len(attributes))
        else:
            try:
                matrix = PairwiseMatrix.from_rows(
                    _parse_field(_MATRIX_ADAPTER, "matrix", raw_matrix, strict=True)
                )
            except InvalidJudgmentError as e:
                raise MalformedRecordError("matrix", str(e)) from e
            if matrix.size != len(attributes):
                raise MalformedRecordError(
                    "matrix",
                    f"size {matrix.size} does not match {len(attributes)} attributes",
                )

        weight_source: WeightSource | None = None
        if document.get("weight_source") is not None:
            weight_source = _parse_field(
                _WEIGHT_SOURCE_ADAPTER, "weight_source", document["weight_source"]
            )
            if isinstance(weight_source, ManualWeights):
                # manual weights always mirror the attribute weights
                weight_source = None

        try:
            record = cls(
                record_id=record_id,
                name=name,
                description=description,
                attributes=attributes,
                scenarios=scenarios,
                matrix=matrix,
                weight_source=weight_source,
                created_at=document.get("created_at"),
                updated_at=document.get("updated_at"),
                saver=saver,
            )
        except ShapeMismatchError as e:
            field = "scenarios" if e.scenario_id is not None else "weight_source"
            raise MalformedRecordError(field, str(e)) from e

        record._state = RecordState.LOADED
        return record

    @classmethod
    def load(
        cls,
        record_id: str,
        store: AnalysisStore,
        *,
        saver: DebouncedSaver | None = None,
    ) -> AnalysisRecord:
        """Fetch a record from the store.

        Raises:
            AnalysisNotFoundError: If the store has no such record.
            MalformedRecordError: If the stored document is invalid.
            StoreError: If the store fails.
        """
        record = cls.from_document(store.load(record_id), saver=saver)
        logger.debug("Loaded analysis %s", record_id)
        return record

    def delete(self, store: AnalysisStore) -> None:
        """Delete the record from the store and drop any pending save."""
        self._require_live()
        store.delete(self._id)
        if self._saver is not None:
            self._saver.close(self)
        self._state = RecordState.DELETED
        logger.info("Deleted analysis %s", self._id)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str | None:
        return self._description

    @property
    def attributes(self) -> list[Attribute]:
        return list(self._attributes)

    @property
    def scenarios(self) -> list[Scenario]:
        return list(self._scenarios)

    @property
    def matrix(self) -> PairwiseMatrix:
        """Copy of the pairwise matrix; edit through set_judgment."""
        return self._matrix.copy()

    @property
    def results(self) -> list[ScenarioResult]:
        """Ranked results, best first."""
        return list(self._results)

    @property
    def weight_source(self) -> WeightSource:
        return self._weight_source

    @property
    def active_weights(self) -> list[int]:
        """Weights used for scoring: derived if present, else manual."""
        return _active_weights(self._attributes, self._weight_source)

    @property
    def weights_total(self) -> int:
        return weights_total(self.active_weights)

    @property
    def top_recommendation(self) -> ScenarioResult | None:
        return top_recommendation(self._results)

    @property
    def state(self) -> RecordState:
        return self._state

    @property
    def is_deleted(self) -> bool:
        return self._state is RecordState.DELETED

    @property
    def revision(self) -> int:
        """Number of mutations applied since the record was built."""
        return self._revision

    @property
    def created_at(self) -> str | None:
        return self._created_at

    @property
    def updated_at(self) -> str | None:
        return self._updated_at

    @property
    def last_save_error(self) -> str | None:
        return self._last_save_error

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_attribute_weight(self, attribute_id: int, weight: int) -> int:
        """Edit one manual weight, clamped so the total never exceeds 100.

        Switches the record back to manual weights.

        Returns:
            The weight actually applied.

        Raises:
            UnknownEntityError: If no attribute has ``attribute_id``.
        """
        index = self._attribute_index(attribute_id)
        new_weights = clamp_weight_edit(
            [attribute.weight for attribute in self._attributes], index, weight
        )
        attributes = [
            attribute.model_copy(update={"weight": new_weight})
            for attribute, new_weight in zip(self._attributes, new_weights, strict=True)
        ]
        self._commit(attributes=attributes, weight_source=ManualWeights(weights=new_weights))
        return new_weights[index]

    def set_rating(self, scenario_id: int, attr_index: int, rating: int) -> None:
        """Set one scenario rating.

        Raises:
            RatingBoundsError: If the rating is not an integer 0-100.
            UnknownEntityError: If the scenario or attribute position does not exist.
        """
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise RatingBoundsError(rating)
        if not MIN_RATING <= rating <= MAX_RATING:
            raise RatingBoundsError(rating)

        position = self._scenario_index(scenario_id)
        scenario = self._scenarios[position]
        if not 0 <= attr_index < len(scenario.ratings):
            raise UnknownEntityError("rating position", attr_index)

        ratings = list(scenario.ratings)
        ratings[attr_index] = rating
        scenarios = list(self._scenarios)
        scenarios[position] = scenario.model_copy(update={"ratings": ratings})
        self._commit(scenarios=scenarios)

    def set_judgment(self, i: int, j: int, slider_position: int) -> None:
        """Record a pairwise judgment between attribute positions i and j.

        When the record uses derived weights they are re-derived from the
        updated matrix.

        Raises:
            InvalidJudgmentError: If the slider position or a position is invalid.
        """
        matrix = self._matrix.copy()
        matrix.set_judgment(i, j, slider_position)
        weight_source = self._weight_source
        if isinstance(weight_source, DerivedWeights):
            weight_source = DerivedWeights(weights=derive_weights(matrix))
        self._commit(matrix=matrix, weight_source=weight_source)

    def derive_weights(self) -> list[int]:
        """Derive weights from the matrix and make them the active weights.

        Near-equal judgments in the matrix are repaired as a side effect.

        Returns:
            The derived weights, summing to 100.
        """
        matrix = self._matrix.copy()
        weights = derive_weights(matrix)
        self._commit(matrix=matrix, weight_source=DerivedWeights(weights=weights))
        return list(weights)

    def use_manual_weights(self) -> None:
        """Drop derived weights and score with the attribute weights again."""
        self._commit(
            weight_source=ManualWeights(
                weights=[attribute.weight for attribute in self._attributes]
            )
        )

    def rename(self, name: str, description: str | None = None) -> None:
        """Change the name and description.

        Raises:
            InvalidNameError: If the name is blank.
        """
        self._require_live()
        self._name = _validate_name(name)
        self._description = description
        self._commit()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self, now: str | None = None) -> dict[str, Any]:
        """Return the save payload for the store.

        Args:
            now: Timestamp to stamp as ``updated_at``. Defaults to current UTC.
        """
        return {
            "name": self._name,
            "description": self._description,
            "attributes": [attribute.model_dump(mode="json") for attribute in self._attributes],
            "scenarios": [scenario.model_dump(mode="json") for scenario in self._scenarios],
            "matrix": self._matrix.rows(),
            "results": [result.to_document() for result in self._results],
            "weight_source": self._weight_source.model_dump(mode="json"),
            "updated_at": now or utc_now_iso(),
        }

    def to_document(self) -> dict[str, Any]:
        """Return the full stored document, including identity and timestamps."""
        document = self.snapshot(self._updated_at)
        document["id"] = self._id
        document["created_at"] = self._created_at
        document["updated_at"] = self._updated_at
        return document

    def mark_saving(self) -> None:
        self._state = RecordState.SAVING

    def mark_saved(self, revision: int, updated_at: str) -> None:
        """Record a completed save of the snapshot taken at ``revision``."""
        self._updated_at = updated_at
        self._last_save_error = None
        if self._state is RecordState.DELETED:
            return
        self._state = RecordState.LOADED if revision == self._revision else RecordState.DIRTY

    def mark_save_failed(self, message: str) -> None:
        self._last_save_error = message
        if self._state is not RecordState.DELETED:
            self._state = RecordState.DIRTY

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(
        self,
        *,
        attributes: list[Attribute] | None = None,
        scenarios: list[Scenario] | None = None,
        matrix: PairwiseMatrix | None = None,
        weight_source: WeightSource | None = None,
    ) -> None:
        """Recompute results for the new inputs, then apply them all at once.

        A failed recomputation leaves the record untouched.
        """
        self._require_live()
        attributes = self._attributes if attributes is None else attributes
        scenarios = self._scenarios if scenarios is None else scenarios
        weight_source = self._weight_source if weight_source is None else weight_source

        results = compute_results(attributes, scenarios, _active_weights(attributes, weight_source))

        self._attributes = attributes
        self._scenarios = scenarios
        if matrix is not None:
            self._matrix = matrix
        self._weight_source = weight_source
        self._results = results
        self._revision += 1
        self._state = RecordState.DIRTY
        logger.debug("Analysis %s recomputed at revision %d", self._id, self._revision)

        if self._saver is not None:
            self._saver.schedule(self)

    def _require_live(self) -> None:
        if self._state is RecordState.DELETED:
            raise RecordStateError(f"Analysis {self._id} has been deleted")

    def _attribute_index(self, attribute_id: int) -> int:
        for index, attribute in enumerate(self._attributes):
            if attribute.id == attribute_id:
                return index
        raise UnknownEntityError("attribute", attribute_id)

    def _scenario_index(self, scenario_id: int) -> int:
        for index, scenario in enumerate(self._scenarios):
            if scenario.id == scenario_id:
                return index
        raise UnknownEntityError("scenario", scenario_id)

    def __repr__(self) -> str:
        return (
            f"AnalysisRecord(id={self._id!r}, state={self._state.value}, "
            f"revision={self._revision})"
        )


def _check_unique(items: Sequence[Attribute] | Sequence[Scenario], field: str) -> None:
    ids = [item.id for item in items]
    if len(set(ids)) != len(ids):
        raise MalformedRecordError(field, "ids must be unique")
    names = [item.name for item in items]
    if field == "attributes" and len(set(names)) != len(names):
        raise MalformedRecordError(field, "names must be unique")
