# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
In-memory image object

Copyright 2025 DNAi inc.
"""

from dataclasses import dataclass

DEFAULT_CONTENT_TYPE = 'image/jpeg'
DEFAULT_NAME = 'image.jpg'


@dataclass(frozen=True)
class ImageBlob:
    """
    Image bytes with a declared media type and file name.
    """
    data: bytes
    content_type: str = DEFAULT_CONTENT_TYPE
    name: str = DEFAULT_NAME

    def __len__(self) -> int:
        return len(self.data)

    def with_data(self, data: bytes) -> 'ImageBlob':
        """Return a new blob with the same media type and name."""
        return ImageBlob(bytes(data), self.content_type, self.name)
