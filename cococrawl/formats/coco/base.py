from typing import Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated

Number = Union[int, float]
"""JSON number, keeps ints as ints so a load/save round trip doesn't turn 100 into 100.0"""

Flag = Annotated[int, Field(ge=0, le=1)]
"""0/1 integer flag (iscrowd, isthing)"""


class CocoModel(BaseModel):
    """
    Common class for every object of the manifest.

    Unknown keys are kept as extras and written back out on save.
    """

    model_config = ConfigDict(extra="allow")


class HasId:
    """Entities with their own id in the namespace of their kind"""

    def get_id(self) -> int:
        return self.id  # type: ignore[attr-defined]

    def set_id(self, new_id: int):
        self.id = new_id


class HasImageId:
    """Entities that belong to an image"""

    def get_image_id(self) -> int:
        return self.image_id  # type: ignore[attr-defined]

    def set_image_id(self, new_image_id: int):
        self.image_id = new_image_id

    def referenced_category_ids(self) -> List[int]:
        return []

    def remap_category_ids(self, mapping: Dict[int, int]):
        pass


class HasCategoryId(HasImageId):
    """Annotations that reference exactly one category"""

    def get_category_id(self) -> int:
        return self.category_id  # type: ignore[attr-defined]

    def set_category_id(self, new_category_id: int):
        self.category_id = new_category_id

    def referenced_category_ids(self) -> List[int]:
        return [self.get_category_id()]

    def remap_category_ids(self, mapping: Dict[int, int]):
        self.set_category_id(mapping[self.get_category_id()])
