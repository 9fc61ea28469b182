"""Document-side image store and the reversible replace-image operation.

ImageStore binds at most one image to each id. ReplaceImage swaps the image
bound to one id for another and can undo and redo the swap. It keeps a full
copy of whichever image is currently unbound rather than a reference, so
the restored pixels are exactly the ones that were replaced.
"""

from __future__ import annotations

from sprite_png.core.types import Image


class ImageStore:
    """Images owned by a document, keyed by image id."""

    def __init__(self) -> None:
        self._images: dict[int, Image] = {}

    def __contains__(self, image_id: int) -> bool:
        return image_id in self._images

    def __len__(self) -> int:
        return len(self._images)

    def add(self, image: Image) -> None:
        if image.id in self._images:
            raise ValueError(f'Image id {image.id} is already bound')
        self._images[image.id] = image

    def get(self, image_id: int) -> Image | None:
        return self._images.get(image_id)

    def replace(self, old_id: int, new_image: Image) -> None:
        """Unbind old_id and bind new_image under its own id."""
        if old_id not in self._images:
            raise KeyError(f'No image bound to id {old_id}')
        if new_image.id != old_id and new_image.id in self._images:
            raise ValueError(f'Image id {new_image.id} is already bound')
        del self._images[old_id]
        self._images[new_image.id] = new_image


class ReplaceImage:
    """Reversible swap of one stored image for another."""

    def __init__(self, store: ImageStore, old_image: Image, new_image: Image):
        self.store = store
        self.old_id = old_image.id
        self.new_id = new_image.id
        self._new_image: Image | None = new_image
        self._copy: Image | None = None

    def execute(self) -> None:
        old_image = self.store.get(self.old_id)
        if old_image is None or self._new_image is None:
            raise RuntimeError('ReplaceImage can only execute once, with the old image bound')
        self._copy = old_image.copy()
        self.store.replace(self.old_id, self._new_image)
        self._new_image = None

    def undo(self) -> None:
        new_image = self.store.get(self.new_id)
        if new_image is None or self._copy is None or self.old_id in self.store:
            raise RuntimeError('Nothing to undo')
        self._copy.id = self.old_id
        self.store.replace(self.new_id, self._copy)
        self._copy = new_image.copy()

    def redo(self) -> None:
        old_image = self.store.get(self.old_id)
        if old_image is None or self._copy is None or self.new_id in self.store:
            raise RuntimeError('Nothing to redo')
        self._copy.id = self.new_id
        self.store.replace(self.old_id, self._copy)
        self._copy = old_image.copy()
