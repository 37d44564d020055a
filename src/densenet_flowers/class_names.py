"""
Class Name Loading

The class-name file lists one class per line; the position of a name is the
integer label of that class.
"""

import logging
from collections import Counter
from typing import List

logger = logging.getLogger(__name__)

# Lines of this length or shorter are treated as blank separators
MIN_NAME_LENGTH = 2


class ClassNamesError(Exception):
    """Base error for an unusable class-name file."""


class ClassNameFileError(ClassNamesError):
    """The class-name file could not be opened."""


class DuplicateClassNameError(ClassNamesError):
    """The same class name appears more than once."""

    def __init__(self, duplicates: List[str]):
        super().__init__(f"Duplicate names in the class name file: {duplicates}")
        self.duplicates = duplicates


class ClassCountMismatchError(ClassNamesError):
    """The file does not hold exactly the expected number of class names."""

    def __init__(self, expected: int, found: int):
        super().__init__(
            "The number of classes does not match the number of lines in the "
            f"class name file (expected {expected}, found {found})"
        )
        self.expected = expected
        self.found = found


def load_class_names(path: str, class_num: int) -> List[str]:
    """Read `class_num` class names from `path`, skipping trivial lines."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except (OSError, UnicodeDecodeError) as e:
        raise ClassNameFileError(f"can't open the class name file: {path} ({e})") from e

    class_names = []
    for line in lines:
        name = line.rstrip("\r\n")
        if len(name) > MIN_NAME_LENGTH:
            class_names.append(name)

    if len(class_names) != class_num:
        raise ClassCountMismatchError(class_num, len(class_names))

    duplicates = sorted(name for name, count in Counter(class_names).items() if count > 1)
    if duplicates:
        raise DuplicateClassNameError(duplicates)

    logger.info(f"Loaded {len(class_names)} class names from {path}")
    return class_names
