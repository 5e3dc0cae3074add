"""In-memory scene collection with a single targeted-merge mutation path."""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from ..errors import ValidationFailure
from ..models import Scene

logger = logging.getLogger(__name__)


class SceneStateStore:
    """Ordered scenes and their generation flags.

    Readers get deep-copied snapshots; every change goes through
    :meth:`update`, which merges fields onto exactly one scene and leaves
    the others and their order untouched. Updates run synchronously on the
    event loop, so updates to one scene apply in the order they are issued
    while updates to different scenes interleave freely.
    """

    def __init__(self, scenes: Iterable[Scene] = ()) -> None:
        self._scenes: List[Scene] = [scene.model_copy(deep=True) for scene in scenes]

    def __len__(self) -> int:
        return len(self._scenes)

    def get(self) -> Tuple[Scene, ...]:
        """Return a snapshot of all scenes in order."""
        return tuple(scene.model_copy(deep=True) for scene in self._scenes)

    def ids(self) -> List[str]:
        return [scene.id for scene in self._scenes]

    def index_of(self, scene_id: str) -> int:
        """Return the position of ``scene_id``.

        Raises:
            KeyError: If no scene has that id.
        """
        for i, scene in enumerate(self._scenes):
            if scene.id == scene_id:
                return i
        raise KeyError(f"Unknown scene: {scene_id}")

    def find(self, scene_id: str) -> Scene:
        """Return a snapshot of one scene."""
        return self._scenes[self.index_of(scene_id)].model_copy(deep=True)

    def next_scene_id(self, scene_id: str) -> Optional[str]:
        """Return the id of the scene after ``scene_id``, or None for the last one."""
        index = self.index_of(scene_id)
        if index + 1 < len(self._scenes):
            return self._scenes[index + 1].id
        return None

    def update(self, scene_id: str, fields: Optional[Mapping[str, Any]] = None, **changes: Any) -> Scene:
        """Merge ``fields`` onto the scene with ``scene_id``.

        Args:
            scene_id: Target scene.
            fields: Field values to merge.
            **changes: Additional field values (merged after ``fields``).

        Returns:
            Snapshot of the updated scene.

        Raises:
            KeyError: If no scene has that id.
            ValidationFailure: If a field is unknown, the id would change, or a
                value does not fit the scene model.
        """
        merged = dict(fields or {})
        merged.update(changes)

        index = self.index_of(scene_id)
        unknown = set(merged) - set(Scene.model_fields)
        if unknown:
            raise ValidationFailure(f"Unknown scene fields: {', '.join(sorted(unknown))}")
        if merged.get("id", scene_id) != scene_id:
            raise ValidationFailure("Scene id cannot be changed")

        current = self._scenes[index]
        data = {name: getattr(current, name) for name in Scene.model_fields}
        data.update(merged)
        try:
            updated = Scene.model_validate(data)
        except ValidationError as e:
            raise ValidationFailure(f"Invalid update for scene {scene_id}: {e}") from e

        self._scenes[index] = updated
        logger.debug(f"Scene {scene_id} updated: {', '.join(sorted(merged))}")
        return updated.model_copy(deep=True)

    def replace_all(self, scenes: Iterable[Scene]) -> None:
        """Replace the whole collection (only done when analysis re-runs)."""
        self._scenes = [scene.model_copy(deep=True) for scene in scenes]
        logger.debug(f"Storyboard replaced with {len(self._scenes)} scenes")
