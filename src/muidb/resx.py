"""
ResX resource file support.

Reads and writes .NET ResX files (string resources only) and converts
between them and a MuiDB store.
"""

from dataclasses import dataclass
from enum import Flag
from lxml import etree
from pathlib import Path
from typing import List, Optional
import os

from .constants import DEFAULT_IMPORT_STATE
from .document import MuiDBFile, PathLike, get_text_content, parse_xml_file, write_atomic
from .errors import MissingTranslationsError, UnconfiguredLanguageError
from .model import ImportResult

XML_SPACE = '{http://www.w3.org/XML/1998/namespace}space'

RESX_HEADERS = [
    ('resmimetype', 'text/microsoft-resx'),
    ('version', '2.0'),
    ('reader', 'System.Resources.ResXResourceReader, System.Windows.Forms, '
               'Version=4.0.0.0, Culture=neutral, PublicKeyToken=b77a5c561934e089'),
    ('writer', 'System.Resources.ResXResourceWriter, System.Windows.Forms, '
               'Version=4.0.0.0, Culture=neutral, PublicKeyToken=b77a5c561934e089'),
]

# Type names under which ResX stores plain strings
STRING_TYPE_PREFIX = 'System.String'


class ExportOptions(Flag):
    NONE = 0
    SORT_ENTRIES = 1
    SKIP_COMMENTS = 2


@dataclass
class ResXEntry:
    """A single string resource."""
    id: Optional[str]
    value: str = ''
    comment: str = ''


def sort_entries(entries: List[ResXEntry]) -> List[ResXEntry]:
    """Order entries by id; entries without id come first."""
    return sorted(entries, key=lambda e: (e.id is not None, e.id or ''))


def _is_string_resource(data: etree._Element) -> bool:
    if data.get('mimetype') is not None:
        return False
    type_name = data.get('type')
    return type_name is None or type_name.startswith(STRING_TYPE_PREFIX)


def read_resx(file_path: PathLike) -> List[ResXEntry]:
    """
    Read all string resources of a ResX file.

    Carriage returns are removed from values and comments so line breaks
    are always plain line feeds.

    Raises:
        FileNotFoundError: If the file does not exist
        MalformedDocumentError: If the file is not well formed XML
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    root = parse_xml_file(path).getroot()
    entries = []
    for data in root.findall('data'):
        if not _is_string_resource(data):
            continue
        value = get_text_content(data.find('value'))
        comment = get_text_content(data.find('comment'))
        entries.append(ResXEntry(
            id=data.get('name'),
            value=value.replace('\r', ''),
            comment=comment.replace('\r', ''),
        ))
    return entries


def write_resx(file_path: PathLike, entries: List[ResXEntry]):
    """
    Write entries as ResX file.

    Line feeds are written with the platform line separator. Entries with
    a blank comment get no comment element.
    """
    root = etree.Element('root')
    for name, value in RESX_HEADERS:
        header = etree.SubElement(root, 'resheader', name=name)
        etree.SubElement(header, 'value').text = value

    for entry in entries:
        data = etree.SubElement(root, 'data')
        if entry.id is not None:
            data.set('name', entry.id)
        data.set(XML_SPACE, 'preserve')
        etree.SubElement(data, 'value').text = (entry.value or '').replace('\n', os.linesep)
        if entry.comment and entry.comment.strip():
            etree.SubElement(data, 'comment').text = entry.comment.replace('\n', os.linesep)

    content = etree.tostring(root, encoding='utf-8', xml_declaration=True, pretty_print=True)
    write_atomic(Path(file_path), content)


def export_resx(
    store: MuiDBFile,
    file_path: PathLike,
    language: str,
    options: ExportOptions = ExportOptions.NONE,
):
    """
    Export one language of a store into a ResX file.

    Each item contributes its text in the given language, or its neutral
    text if there is none.

    Raises:
        UnconfiguredLanguageError: If language is not configured in the store
        MissingTranslationsError: Listing all items without a usable text
    """
    if language not in store.get_languages():
        raise UnconfiguredLanguageError(language)

    entries = []
    missing = []
    for item in store.items:
        text = item.get_text(language)
        if text is None:
            missing.append((item.id, language))
            continue

        entry = ResXEntry(id=item.id, value=text.value)
        if not options & ExportOptions.SKIP_COMMENTS:
            entry.comment = item.get_comment(language) or ''
        entries.append(entry)

    if missing:
        raise MissingTranslationsError(missing)

    if options & ExportOptions.SORT_ENTRIES:
        entries = sort_entries(entries)

    write_resx(file_path, entries)


def import_resx(store: MuiDBFile, file_path: PathLike, language: str) -> ImportResult:
    """
    Merge the strings of a ResX file into a store as texts of one language.

    Imported texts get the state 'new'. The language is added to the
    configured languages if necessary.
    """
    result = ImportResult()
    for entry in read_resx(file_path):
        outcome = store.add_or_update_string(
            entry.id, language, entry.value, DEFAULT_IMPORT_STATE, entry.comment
        )
        result.record(entry.id, outcome)

    languages = store.get_languages()
    if language not in languages:
        store.set_languages(languages + [language])

    return result


def export_target_files(store: MuiDBFile) -> List[Path]:
    """
    Export every target file declared in the store's settings.

    Target file names are resolved relative to the MuiDB file.

    Returns:
        Paths of the written files
    """
    base_dir = store.path.parent
    written = []
    for target in store.target_files:
        output_path = base_dir / target.name
        export_resx(store, output_path, target.lang)
        written.append(output_path)
    return written
