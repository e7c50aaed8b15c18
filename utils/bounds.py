"""Face bounding box model shared by the detector, crops and person tags."""

from typing import Optional

from pydantic import BaseModel


class BoundingBox(BaseModel):
    """Rectangle in source-image pixel coordinates."""
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_row(cls, row) -> Optional['BoundingBox']:
        """Build from a user_files row; None unless all four columns are set."""
        values = (row['x'], row['y'], row['width'], row['height'])
        if any(v is None for v in values):
            return None
        return cls(x=values[0], y=values[1], width=values[2], height=values[3])

    def as_binds(self):
        return [self.x, self.y, self.width, self.height]
