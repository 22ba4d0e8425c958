"""
MuiDB Store Module

Handles loading, modifying, validating and saving MuiDB files.
A MuiDB file is an XML document holding the settings of a localization
project and all of its translatable items.
"""

from lxml import etree
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import os
import stat
import tempfile

from .constants import (
    BASE_NAME_ATTRIBUTE,
    CODE_NAMESPACE_ATTRIBUTE,
    COMMENT_ELEMENT,
    DESIGNER_ATTRIBUTE,
    ID_ATTRIBUTE,
    ITEM_ELEMENT,
    ITEMS_ELEMENT,
    LANG_ATTRIBUTE,
    LANGUAGE_SEPARATOR,
    LANGUAGES_ATTRIBUTE,
    MAX_FILE_SIZE,
    MUIDB_NAMESPACE,
    NEUTRAL_LANGUAGE,
    PROJECT_TITLE_ATTRIBUTE,
    ROOT_ELEMENT,
    SETTINGS_ELEMENT,
    STATE_ATTRIBUTE,
    TARGET_FILE_ELEMENT,
    TEXT_ELEMENT,
)
from .errors import (
    DocumentNotFoundError,
    InvalidArgumentError,
    MalformedDocumentError,
    MissingTranslationsError,
)
from .model import (
    AddOrUpdateResult,
    DesignerFile,
    Document,
    Item,
    OpenMode,
    Settings,
    TargetFile,
    TextItem,
)
from .schema import get_schema
from .states import to_muidb

UTF8_BOM = b'\xef\xbb\xbf'

PathLike = Union[str, os.PathLike]


def secure_parser() -> etree.XMLParser:
    """XML parser hardened against entity expansion and network access."""
    return etree.XMLParser(
        remove_blank_text=False,
        strip_cdata=False,
        resolve_entities=False,  # Prevent XXE attacks
        no_network=True,         # Block external network access
        huge_tree=False,         # Prevent billion laughs / memory exhaustion
    )


def parse_xml_file(file_path: Path) -> etree._ElementTree:
    """
    Parse an XML file with size limit and hardened parser.

    Raises:
        MalformedDocumentError: If the file is too large or not well formed
    """
    file_size = file_path.stat().st_size
    if file_size > MAX_FILE_SIZE:
        raise MalformedDocumentError(
            f"File too large: {file_size / (1024*1024):.1f}MB "
            f"(max: {MAX_FILE_SIZE / (1024*1024):.0f}MB)",
            file_path,
        )
    try:
        return etree.parse(str(file_path), secure_parser())
    except etree.XMLSyntaxError as e:
        raise MalformedDocumentError(f"Invalid XML in {file_path}: {e}", file_path) from e


def get_text_content(element: Optional[etree._Element]) -> str:
    """
    Extract text content from an element, handling mixed content.

    Args:
        element: XML element to extract text from

    Returns:
        Concatenated text content
    """
    if element is None:
        return ""

    text_parts = []
    if isinstance(element.text, str):
        text_parts.append(element.text)

    for child in element:
        # Comments and processing instructions carry no translatable text
        if isinstance(child.tag, str):
            text_parts.append(get_text_content(child))
        if child.tail:
            text_parts.append(child.tail)

    return ''.join(text_parts)


def write_atomic(output_path: Path, data: bytes):
    """
    Write data to output_path through a temporary file in the same directory.

    The destination is replaced in one step, so readers never see a
    partially written file.
    """
    directory = output_path.parent
    fd, temp_name = tempfile.mkstemp(
        prefix=f'.{output_path.name}.', suffix='.tmp', dir=str(directory)
    )
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        # mkstemp creates owner-only files; keep the permissions a plain open() would give
        if output_path.exists():
            mode = stat.S_IMODE(output_path.stat().st_mode)
        else:
            umask = os.umask(0)
            os.umask(umask)
            mode = 0o666 & ~umask
        os.chmod(temp_name, mode)

        os.replace(temp_name, str(output_path))
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def _qname(local_name: str) -> str:
    return f'{{{MUIDB_NAMESPACE}}}{local_name}'


class MuiDBFile:
    """A MuiDB file loaded into memory."""

    def __init__(self, file_path: PathLike, mode: OpenMode = OpenMode.OPEN_EXISTING):
        """
        Open a MuiDB file.

        Args:
            file_path: Path to the MuiDB file
            mode: OPEN_EXISTING fails on a missing file; CREATE_IF_MISSING
                  starts from an empty document without touching the disk

        Raises:
            DocumentNotFoundError: If the file is missing in OPEN_EXISTING mode
            MalformedDocumentError: If the file can not be read as MuiDB document
        """
        self.file_path = Path(file_path)
        self._has_bom = False
        # Tree as read from disk; the model drops content it does not know
        self._source_root: Optional[etree._Element] = None
        if not self.file_path.exists():
            if mode is not OpenMode.CREATE_IF_MISSING:
                raise DocumentNotFoundError(self.file_path)
            self._document = Document.empty()
        else:
            self._document = self._load_file()

    @property
    def path(self) -> Path:
        return self.file_path

    def _load_file(self) -> Document:
        """Load and parse the MuiDB file."""
        with open(self.file_path, 'rb') as f:
            self._has_bom = f.read(3) == UTF8_BOM

        root = parse_xml_file(self.file_path).getroot()
        if etree.QName(root).localname != ROOT_ELEMENT:
            raise MalformedDocumentError(
                f"Not a MuiDB file: root element is '{etree.QName(root).localname}'",
                self.file_path,
            )

        self._source_root = root
        namespace = etree.QName(root).namespace
        return Document(
            settings=self._read_settings(root, namespace),
            items=self._read_items(root, namespace),
        )

    @staticmethod
    def _tag(namespace: Optional[str], local_name: str) -> str:
        return f'{{{namespace}}}{local_name}' if namespace else local_name

    def _read_settings(self, root: etree._Element, namespace: Optional[str]) -> Settings:
        settings_elem = root.find(self._tag(namespace, SETTINGS_ELEMENT))
        if settings_elem is None:
            return Settings(base_name=None)

        target_files = []
        for target in settings_elem.findall(self._tag(namespace, TARGET_FILE_ELEMENT)):
            target_files.append(TargetFile(
                name=get_text_content(target),
                lang=target.get(LANG_ATTRIBUTE),
                designer=target.get(DESIGNER_ATTRIBUTE),
            ))

        return Settings(
            languages=parse_languages(settings_elem.get(LANGUAGES_ATTRIBUTE)),
            base_name=settings_elem.get(BASE_NAME_ATTRIBUTE),
            code_namespace=settings_elem.get(CODE_NAMESPACE_ATTRIBUTE),
            project_title=settings_elem.get(PROJECT_TITLE_ATTRIBUTE),
            target_files=target_files,
        )

    def _read_items(self, root: etree._Element, namespace: Optional[str]) -> Dict[str, Item]:
        items: Dict[str, Item] = {}
        for item_elem in root.iter(self._tag(namespace, ITEM_ELEMENT)):
            item_id = item_elem.get(ID_ATTRIBUTE)
            if not item_id:
                raise MalformedDocumentError(
                    f"Item without id at line {item_elem.sourceline}", self.file_path
                )
            if item_id in items:
                raise MalformedDocumentError(
                    f"Item '{item_id}' is defined more than once.", self.file_path
                )

            item = Item(id=item_id)
            for text_elem in item_elem.findall(self._tag(namespace, TEXT_ELEMENT)):
                lang = text_elem.get(LANG_ATTRIBUTE)
                if lang is None or not lang.strip():
                    lang = NEUTRAL_LANGUAGE
                if lang in item.texts:
                    raise MalformedDocumentError(
                        f"Item '{item_id}' has multiple entries for language '{lang}'.",
                        self.file_path,
                    )
                item.texts[lang] = TextItem(
                    value=get_text_content(text_elem),
                    state=text_elem.get(STATE_ATTRIBUTE),
                )

            # Language specific comments of older files collapse onto the neutral one
            for comment_elem in item_elem.findall(self._tag(namespace, COMMENT_ELEMENT)):
                item.comments[NEUTRAL_LANGUAGE] = get_text_content(comment_elem)

            items[item_id] = item
        return items

    # Read accessors

    @property
    def items(self) -> List[Item]:
        """Detached copies of all items in document order."""
        return list(self._document.copy().items.values())

    def get_item(self, item_id: str) -> Optional[Item]:
        """Detached copy of a single item, or None if the id is unknown."""
        item = self._document.items.get(item_id)
        return self._copy_item(item) if item is not None else None

    @staticmethod
    def _copy_item(item: Item) -> Item:
        return Item(
            id=item.id,
            texts={lang: TextItem(t.value, t.state) for lang, t in item.texts.items()},
            comments=dict(item.comments),
        )

    @property
    def target_files(self) -> List[TargetFile]:
        return [
            TargetFile(name=t.name, lang=t.lang, designer=t.designer)
            for t in self._document.settings.target_files
        ]

    def get_designer_file(self, target_file: TargetFile) -> Optional[DesignerFile]:
        return self._document.settings.resolve_designer(target_file)

    def add_target_file(self, name: str, lang: Optional[str] = None, designer: Optional[str] = None):
        """Declare an output file generated from this document."""
        if not name or not name.strip():
            raise InvalidArgumentError("Target file name must not be blank")
        self._document.settings.target_files.append(
            TargetFile(name=name, lang=lang, designer=designer)
        )

    @property
    def project_title(self) -> Optional[str]:
        return self._document.settings.project_title

    @project_title.setter
    def project_title(self, value: Optional[str]):
        self._document.settings.project_title = value

    @property
    def base_name(self) -> Optional[str]:
        return self._document.settings.base_name

    @base_name.setter
    def base_name(self, value: Optional[str]):
        self._document.settings.base_name = value

    @property
    def code_namespace(self) -> Optional[str]:
        return self._document.settings.code_namespace

    @code_namespace.setter
    def code_namespace(self, value: Optional[str]):
        self._document.settings.code_namespace = value

    def get_languages(self) -> List[str]:
        return list(self._document.settings.languages)

    def set_languages(self, languages: Iterable[str]):
        """Replace the configured languages (trimmed, duplicates removed)."""
        result: List[str] = []
        for lang in languages:
            lang = lang.strip() if lang else ''
            if lang and lang not in result:
                result.append(lang)
        self._document.settings.languages = result

    def get_document_copy(self) -> Document:
        """Snapshot of the whole document, independent of later changes."""
        return self._document.copy()

    # Mutation

    def add_or_update_string(
        self,
        item_id: str,
        lang: Optional[str],
        text: str,
        state: str,
        comment: Optional[str] = None,
    ) -> AddOrUpdateResult:
        """
        Add a text to an item or update it if it already exists.

        Args:
            item_id: Id of the item; the item is created if missing
            lang: Language of the text; blank means the neutral language
            text: The translated text
            state: Workflow state in any known vocabulary
            comment: Replaces the item's comment unless blank

        Returns:
            AddOrUpdateResult.ADDED if the item was created, UPDATED otherwise

        Raises:
            InvalidArgumentError: If item_id or state is blank
            UnrecognizedStateError: If state can not be converted
        """
        # Validate everything before the first mutation
        valid_state = to_muidb(state)
        if item_id is None or not str(item_id).strip():
            raise InvalidArgumentError("Item id must not be blank")
        if lang is None or not lang.strip():
            lang = NEUTRAL_LANGUAGE

        items = self._document.items
        item = items.get(item_id)
        if item is None:
            item = Item(id=item_id)
            items[item_id] = item
            result = AddOrUpdateResult.ADDED
        else:
            result = AddOrUpdateResult.UPDATED

        is_new_language = lang not in item.texts
        item.texts[lang] = TextItem(value=text if text is not None else '', state=valid_state)

        if comment is not None and comment.strip():
            item.comments[NEUTRAL_LANGUAGE] = comment

        languages = self._document.settings.languages
        if is_new_language and lang != NEUTRAL_LANGUAGE and lang not in languages:
            languages.append(lang)

        return result

    # Validation

    def validate(self):
        """
        Validate the document.

        Both the file as it was loaded and the current in-memory document
        are checked against the schema.

        Raises:
            MalformedDocumentError: If the document violates the MuiDB schema
            MissingTranslationsError: Listing every (item id, language) pair
                                      without a text
        """
        schema = get_schema()
        trees = [self.to_element()]
        if self._source_root is not None:
            trees.insert(0, self._source_root)

        for tree in trees:
            if not schema.validate(tree):
                errors = '; '.join(
                    f"line {e.line}: {e.message}" for e in schema.error_log
                )
                raise MalformedDocumentError(f"Schema validation failed: {errors}", self.file_path)

        missing = self.find_missing_translations()
        if missing:
            raise MissingTranslationsError(missing)

    def find_missing_translations(
        self, languages: Optional[Iterable[str]] = None
    ) -> List[Tuple[str, str]]:
        """(item id, language) pairs lacking both a language and a neutral text."""
        if languages is None:
            languages = self._document.settings.languages
        languages = list(languages)
        missing = []
        for item in self._document.items.values():
            for lang in languages:
                if lang not in item.texts and NEUTRAL_LANGUAGE not in item.texts:
                    missing.append((item.id, lang))
        return missing

    # Serialization

    def to_element(self) -> etree._Element:
        """Build the XML tree of the current document."""
        settings = self._document.settings
        root = etree.Element(_qname(ROOT_ELEMENT), nsmap={None: MUIDB_NAMESPACE})

        settings_elem = etree.SubElement(root, _qname(SETTINGS_ELEMENT))
        if settings.base_name is not None:
            settings_elem.set(BASE_NAME_ATTRIBUTE, settings.base_name)
        settings_elem.set(LANGUAGES_ATTRIBUTE, LANGUAGE_SEPARATOR.join(settings.languages))
        if settings.code_namespace is not None:
            settings_elem.set(CODE_NAMESPACE_ATTRIBUTE, settings.code_namespace)
        if settings.project_title is not None:
            settings_elem.set(PROJECT_TITLE_ATTRIBUTE, settings.project_title)

        for target in settings.target_files:
            target_elem = etree.SubElement(settings_elem, _qname(TARGET_FILE_ELEMENT))
            if target.lang is not None:
                target_elem.set(LANG_ATTRIBUTE, target.lang)
            if target.designer is not None:
                target_elem.set(DESIGNER_ATTRIBUTE, target.designer)
            target_elem.text = target.name

        items_elem = etree.SubElement(root, _qname(ITEMS_ELEMENT))
        for item in self._document.items.values():
            item_elem = etree.SubElement(items_elem, _qname(ITEM_ELEMENT))
            item_elem.set(ID_ATTRIBUTE, item.id)

            # The comment must be the first child of its item
            comment = item.comments.get(NEUTRAL_LANGUAGE)
            if comment is not None:
                etree.SubElement(item_elem, _qname(COMMENT_ELEMENT)).text = comment

            for lang, text in item.texts.items():
                text_elem = etree.SubElement(item_elem, _qname(TEXT_ELEMENT))
                text_elem.set(LANG_ATTRIBUTE, lang)
                if text.state is not None:
                    text_elem.set(STATE_ATTRIBUTE, text.state)
                text_elem.text = text.value

        return root

    def to_xml(self, pretty_print: bool = False) -> str:
        """Serialized document without XML declaration."""
        return etree.tostring(self.to_element(), encoding='unicode', pretty_print=pretty_print)

    def save(self, output_path: Optional[PathLike] = None):
        """
        Save the document, sorting items by id first.

        The file is written to a temporary file and moved over the
        destination. A UTF-8 BOM is kept if the loaded file had one.

        Args:
            output_path: Optional output path. If None, overwrites the original file.
        """
        if output_path is None:
            output_path = self.file_path
        output_path = Path(output_path)

        self._document.sort_items()

        xml_content = etree.tostring(
            self.to_element(),
            encoding='utf-8',
            xml_declaration=False,
            pretty_print=True,
        )

        data = b''
        if self._has_bom:
            data += UTF8_BOM
        data += b'<?xml version="1.0" encoding="utf-8"?>\n' + xml_content
        write_atomic(output_path, data)

        # The file on disk now holds exactly the in-memory document
        if output_path == self.file_path:
            self._source_root = None

    # Statistics

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get statistics about the MuiDB file.

        Returns:
            Dictionary with statistics:
            - project_title: Project title (or None)
            - total_items: Number of items
            - languages: Configured languages
            - used_languages: Languages that have at least one text
            - state_counts: Count of texts by state
            - comment_count: Number of items with a comment
            - target_files: Declared output files
        """
        state_counts: Dict[str, int] = {}
        used_languages: List[str] = []
        comment_count = 0

        for item in self._document.items.values():
            comment_count += len(item.comments)
            for lang, text in item.texts.items():
                if lang not in used_languages:
                    used_languages.append(lang)
                state_key = text.state or 'unknown'
                state_counts[state_key] = state_counts.get(state_key, 0) + 1

        return {
            'project_title': self.project_title,
            'total_items': len(self._document.items),
            'languages': self.get_languages(),
            'used_languages': used_languages,
            'state_counts': state_counts,
            'comment_count': comment_count,
            'target_files': [
                {'name': t.name, 'lang': t.lang, 'designer': t.designer}
                for t in self._document.settings.target_files
            ],
        }


def parse_languages(value: Optional[str]) -> List[str]:
    """Split a languages attribute into trimmed language tags."""
    if value is None or not value.strip():
        return []
    return [lang.strip() for lang in value.split(LANGUAGE_SEPARATOR) if lang.strip()]
