"""
XLIFF Reader Module

Reads translation units from XLIFF 1.2 and 2.0 files and imports them
into a MuiDB store. Target states are converted into MuiDB states.
Writing XLIFF is not supported.
"""

from dataclasses import dataclass, field
from lxml import etree
from pathlib import Path
from typing import List, Optional

from .constants import XLIFF_NAMESPACES, XLIFF_NO_ID
from .document import MuiDBFile, PathLike, get_text_content, parse_xml_file
from .errors import FormatNotSupportedError, MalformedDocumentError
from .model import ImportResult
from .states import XlfV12State, XlfV20State


@dataclass
class TransUnit:
    """
    A translation unit read from an XLIFF file.

    Attributes:
        id: The unit id
        resname: Resource name (XLIFF 1.2 only)
        target: Target text, None if the unit has no target
        state: Target state in the file's own vocabulary
        notes: Note texts in document order
    """
    id: Optional[str]
    resname: Optional[str] = None
    target: Optional[str] = None
    state: Optional[str] = None
    notes: List[str] = field(default_factory=list)

    @property
    def key(self) -> Optional[str]:
        """Item id to use: the resname when the id is 'none'."""
        if self.id == XLIFF_NO_ID:
            return self.resname
        return self.id

    @property
    def comment(self) -> Optional[str]:
        return self.notes[0] if self.notes else None


def _local_name(element: etree._Element) -> Optional[str]:
    if not isinstance(element.tag, str):
        return None
    return etree.QName(element).localname


def _children(element: etree._Element, local_name: str) -> List[etree._Element]:
    return [child for child in element if _local_name(child) == local_name]


def _child(element: etree._Element, local_name: str) -> Optional[etree._Element]:
    children = _children(element, local_name)
    return children[0] if children else None


def _detect_version(root: etree._Element) -> str:
    """Determine the XLIFF version from the namespace or version attribute."""
    namespace = etree.QName(root).namespace
    for version, uri in XLIFF_NAMESPACES.items():
        if namespace == uri:
            return version
    version = root.get('version', '1.2')
    return '2.0' if version.startswith('2') else '1.2'


def _read_v12_units(root: etree._Element) -> List[TransUnit]:
    units = []
    for element in root.iter():
        if _local_name(element) != 'trans-unit':
            continue

        target_elem = _child(element, 'target')
        state = None
        target = None
        if target_elem is not None:
            target = get_text_content(target_elem)
            state = target_elem.get('state') or XlfV12State.NEW.value

        units.append(TransUnit(
            id=element.get('id'),
            resname=element.get('resname'),
            target=target,
            state=state,
            notes=[get_text_content(n) for n in _children(element, 'note')],
        ))
    return units


def _read_v20_units(root: etree._Element) -> List[TransUnit]:
    units = []
    for element in root.iter():
        if _local_name(element) != 'unit':
            continue

        notes_elem = _child(element, 'notes')
        notes = []
        if notes_elem is not None:
            notes = [get_text_content(n) for n in _children(notes_elem, 'note')]

        # A unit may be split into several segments; their targets are joined
        target_parts = []
        state = None
        has_target = False
        for segment in _children(element, 'segment'):
            if state is None:
                state = segment.get('state')
            target_elem = _child(segment, 'target')
            if target_elem is not None:
                has_target = True
                target_parts.append(get_text_content(target_elem))

        units.append(TransUnit(
            id=element.get('id'),
            resname=element.get('name'),
            target=''.join(target_parts) if has_target else None,
            state=(state or XlfV20State.INITIAL.value) if has_target else None,
            notes=notes,
        ))
    return units


def read_xliff(file_path: PathLike) -> List[TransUnit]:
    """
    Read all translation units of an XLIFF file.

    Args:
        file_path: Path to an XLIFF 1.2 or 2.0 file

    Returns:
        List of TransUnit objects in document order

    Raises:
        FileNotFoundError: If the file does not exist
        MalformedDocumentError: If the file is not an XLIFF document
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    root = parse_xml_file(path).getroot()
    if _local_name(root) != 'xliff':
        raise MalformedDocumentError(
            f"Not an XLIFF file: root element is '{_local_name(root)}'", path
        )

    if _detect_version(root) == '2.0':
        return _read_v20_units(root)
    return _read_v12_units(root)


def import_xliff(store: MuiDBFile, file_path: PathLike, language: str) -> ImportResult:
    """
    Merge the units of an XLIFF file into a store as texts of one language.

    Target states are converted into MuiDB states; the first note of a
    unit becomes the item comment. Units without target are skipped.
    """
    result = ImportResult()
    for unit in read_xliff(file_path):
        if unit.target is None:
            result.skipped_items.append(unit.key)
            continue

        outcome = store.add_or_update_string(
            unit.key, language, unit.target, unit.state, unit.comment
        )
        result.record(unit.key, outcome)

    languages = store.get_languages()
    if language not in languages:
        store.set_languages(languages + [language])

    return result


def write_xliff(file_path: PathLike, units: List[TransUnit]):
    """Writing XLIFF files is not implemented."""
    raise FormatNotSupportedError("xliff export is not implemented, yet")


def export_xliff(store: MuiDBFile, file_path: PathLike, language: str):
    """Exporting a store to XLIFF is not implemented."""
    raise FormatNotSupportedError("xliff export is not implemented, yet")
