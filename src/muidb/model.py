"""
Value types of a MuiDB document.

A Document is a plain data structure (settings + items keyed by id).
The MuiDBFile store owns one Document and hands out deep copies only.
"""

from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from .constants import DESIGNER_INTERNAL, NEUTRAL_LANGUAGE


class OpenMode(Enum):
    OPEN_EXISTING = 'open-existing'
    CREATE_IF_MISSING = 'create-if-missing'


class AddOrUpdateResult(Enum):
    ADDED = 'added'
    UPDATED = 'updated'


@dataclass
class TextItem:
    """A translation of one item into one language."""
    value: str = ''
    state: Optional[str] = None


@dataclass
class Item:
    """
    A localizable unit.

    Attributes:
        id: Unique identifier, used as merge key
        texts: Language tag (or '*') -> TextItem
        comments: Language tag -> comment; only '*' is populated
    """
    id: str
    texts: Dict[str, TextItem] = field(default_factory=dict)
    comments: Dict[str, str] = field(default_factory=dict)

    def get_text(self, language: str) -> Optional[TextItem]:
        """Text for a language, falling back to the neutral text."""
        text = self.texts.get(language)
        if text is None:
            text = self.texts.get(NEUTRAL_LANGUAGE)
        return text

    def get_comment(self, language: str) -> Optional[str]:
        """Comment for a language, falling back to the neutral comment."""
        comment = self.comments.get(language)
        if comment is None:
            comment = self.comments.get(NEUTRAL_LANGUAGE)
        return comment

    @property
    def comment(self) -> Optional[str]:
        return self.comments.get(NEUTRAL_LANGUAGE)


@dataclass
class DesignerFile:
    """Parameters of a designer stub declared for a target file."""
    class_name: str
    namespace: Optional[str] = None
    is_internal: bool = True


@dataclass
class TargetFile:
    """
    A resource file generated from the document.

    Attributes:
        name: Output path, relative to the MuiDB file
        lang: Language written into the file
        designer: 'internal' or 'public' if a designer stub is requested
    """
    name: str
    lang: Optional[str] = None
    designer: Optional[str] = None


@dataclass
class Settings:
    languages: List[str] = field(default_factory=list)
    base_name: Optional[str] = ''
    code_namespace: Optional[str] = None
    project_title: Optional[str] = None
    target_files: List[TargetFile] = field(default_factory=list)

    def resolve_designer(self, target_file: TargetFile) -> Optional[DesignerFile]:
        """
        Build the designer stub parameters for a target file.

        The class name is the base name, or the target file's stem when the
        base name is blank. Returns None if no stub was requested.
        """
        if target_file.designer is None:
            return None
        class_name = self.base_name
        if not class_name or not class_name.strip():
            class_name = Path(target_file.name).stem
        return DesignerFile(
            class_name=class_name,
            namespace=self.code_namespace,
            is_internal=target_file.designer == DESIGNER_INTERNAL,
        )


@dataclass
class Document:
    settings: Settings = field(default_factory=Settings)
    items: Dict[str, Item] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> 'Document':
        """The skeleton used for newly created files."""
        return cls()

    def copy(self) -> 'Document':
        return deepcopy(self)

    def sort_items(self):
        """Reorder items by ascending id."""
        self.items = dict(sorted(self.items.items()))


@dataclass
class ImportResult:
    """Outcome of importing an interchange file into a store."""
    added_items: List[str] = field(default_factory=list)
    updated_items: List[str] = field(default_factory=list)
    skipped_items: List[str] = field(default_factory=list)

    def record(self, item_id: str, result: AddOrUpdateResult):
        if result is AddOrUpdateResult.ADDED:
            self.added_items.append(item_id)
        else:
            self.updated_items.append(item_id)

    @property
    def total(self) -> int:
        return len(self.added_items) + len(self.updated_items)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            'added_items': list(self.added_items),
            'updated_items': list(self.updated_items),
            'skipped_items': list(self.skipped_items),
        }
