"""
Tests for the MCP server tools, the store cache and the command line.

Tool handlers are called directly; no MCP transport is involved.
"""

import asyncio
import json
import os
import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from muidb import cache
from muidb.__main__ import get_search_directories, parse_args
from muidb.cache import clear_store_cache, get_store, resolve_file_path, set_search_directories
from muidb.document import MuiDBFile
from muidb.resx import ResXEntry, read_resx, write_resx
from muidb.server import call_tool, list_tools


SAMPLE_MUIDB = '''<?xml version="1.0" encoding="utf-8"?>
<muidb xmlns="http://github.com/fmuecke/MuiDB">
  <settings base-name="Strings" languages="de;en" project-title="Server test">
    <target-file lang="de">Strings.de.resx</target-file>
  </settings>
  <items>
    <item id="zeta">
      <text lang="de" state="new">Zett</text>
      <text lang="en" state="translated">Zed</text>
    </item>
    <item id="alpha">
      <comment>First letter</comment>
      <text lang="de" state="reviewed">Alpha</text>
      <text lang="en" state="final">Alpha</text>
    </item>
  </items>
</muidb>'''


@pytest.fixture(autouse=True)
def reset_cache():
    """Isolate tests from cached stores and search directories."""
    clear_store_cache()
    set_search_directories([])
    yield
    clear_store_cache()
    set_search_directories([])


@pytest.fixture
def muidb_file(tmp_path):
    path = tmp_path / 'strings.xml'
    path.write_bytes(SAMPLE_MUIDB.encode('utf-8'))
    return path


def call(name: str, **arguments) -> str:
    result = asyncio.run(call_tool(name, arguments))
    assert len(result) == 1
    return result[0].text


class TestListTools:
    """Tests for the tool declarations."""

    def test_tool_names(self):
        tools = asyncio.run(list_tools())
        assert [t.name for t in tools] == [
            'read_muidb',
            'get_muidb_info',
            'add_or_update_string',
            'set_languages',
            'validate_muidb',
            'save_muidb',
            'format_muidb',
            'import_file',
            'export_file',
            'export_target_files',
        ]

    def test_file_path_required(self):
        for tool in asyncio.run(list_tools()):
            assert 'file_path' in tool.inputSchema['required']


class TestReadTools:
    """Tests for read_muidb and get_muidb_info."""

    def test_read_muidb(self, muidb_file):
        items = json.loads(call('read_muidb', file_path=str(muidb_file)))
        assert [item['id'] for item in items] == ['zeta', 'alpha']
        assert items[0]['texts']['en'] == {'value': 'Zed', 'state': 'translated'}
        assert items[1]['comments'] == {'*': 'First letter'}

    def test_get_muidb_info(self, muidb_file):
        info = json.loads(call('get_muidb_info', file_path=str(muidb_file)))
        assert info['project_title'] == 'Server test'
        assert info['total_items'] == 2
        assert info['languages'] == ['de', 'en']
        assert info['state_counts'] == {'new': 1, 'translated': 1, 'reviewed': 1, 'final': 1}

    def test_missing_file(self, tmp_path):
        text = call('read_muidb', file_path=str(tmp_path / 'missing.xml'))
        assert text.startswith('File not found.')

    def test_wrong_extension(self, tmp_path):
        text = call('read_muidb', file_path=str(tmp_path / 'strings.txt'))
        assert text.startswith('Error: Invalid file type')

    def test_unknown_tool(self):
        assert call('delete_everything') == 'Unknown tool: delete_everything'


class TestEditTools:
    """Tests for the editing tools and save_muidb."""

    def test_add_then_save(self, muidb_file):
        text = call(
            'add_or_update_string', file_path=str(muidb_file),
            item_id='beta', lang='fr', text='Bêta', state='signed-off', comment='Second letter',
        )
        assert text.startswith("Added item 'beta'.")

        # Not written until saved
        assert MuiDBFile(muidb_file).get_item('beta') is None

        text = call('save_muidb', file_path=str(muidb_file))
        assert text.startswith('Successfully saved MuiDB file to:')

        saved = MuiDBFile(muidb_file)
        item = saved.get_item('beta')
        assert item.texts['fr'].value == 'Bêta'
        assert item.texts['fr'].state == 'reviewed'
        assert item.comment == 'Second letter'
        assert saved.get_languages() == ['de', 'en', 'fr']
        assert [i.id for i in saved.items] == ['alpha', 'beta', 'zeta']

    def test_update_existing(self, muidb_file):
        text = call(
            'add_or_update_string', file_path=str(muidb_file),
            item_id='zeta', lang='de', text='Zet', state='final',
        )
        assert text.startswith("Updated item 'zeta'.")

    def test_default_state_is_new(self, muidb_file):
        call('add_or_update_string', file_path=str(muidb_file), item_id='n', lang='de', text='N')
        items = json.loads(call('read_muidb', file_path=str(muidb_file)))
        assert items[-1]['texts']['de']['state'] == 'new'

    def test_unknown_state(self, muidb_file):
        text = call(
            'add_or_update_string', file_path=str(muidb_file),
            item_id='zeta', lang='de', text='Zet', state='bogus',
        )
        assert text.startswith("Error: The state 'bogus' is unknown")

    def test_create_new_file(self, tmp_path):
        path = tmp_path / 'new.xml'
        call(
            'add_or_update_string', file_path=str(path), create=True,
            item_id='hello', lang='en', text='Hello', state='new',
        )
        call('save_muidb', file_path=str(path))

        assert MuiDBFile(path).get_item('hello').texts['en'].value == 'Hello'

    def test_save_to_output_path(self, muidb_file, tmp_path):
        output = tmp_path / 'copy.xml'
        call('set_languages', file_path=str(muidb_file), languages=['en', 'de', 'en'])
        text = call('save_muidb', file_path=str(muidb_file), output_path=str(output))

        assert str(output.resolve()) in text
        assert MuiDBFile(output).get_languages() == ['en', 'de']
        assert MuiDBFile(muidb_file).get_languages() == ['de', 'en']

    def test_save_unknown_file(self, tmp_path):
        """A path that was never opened is reported, not created."""
        path = tmp_path / 'typo.xml'
        text = call('save_muidb', file_path=str(path))
        assert text.startswith('File not found.')
        assert not path.exists()

    def test_format_muidb(self, muidb_file):
        text = call('format_muidb', file_path=str(muidb_file))
        assert text.startswith('Formatted')
        assert [i.id for i in MuiDBFile(muidb_file).items] == ['alpha', 'zeta']

    def test_format_keeps_pending_changes(self, muidb_file):
        call(
            'add_or_update_string', file_path=str(muidb_file),
            item_id='beta', lang='de', text='Beta', state='new',
        )
        call('format_muidb', file_path=str(muidb_file))

        saved = MuiDBFile(muidb_file)
        assert [i.id for i in saved.items] == ['alpha', 'beta', 'zeta']
        assert saved.get_item('beta').texts['de'].value == 'Beta'


class TestValidateTool:
    """Tests for validate_muidb."""

    def test_valid(self, muidb_file):
        assert call('validate_muidb', file_path=str(muidb_file)).endswith('is valid.')

    def test_missing_translations(self, muidb_file):
        call('set_languages', file_path=str(muidb_file), languages=['de', 'en', 'fr'])
        result = json.loads(call('validate_muidb', file_path=str(muidb_file)))

        assert result['error'] == 'missing translations'
        assert result['missing'] == [
            {'id': 'zeta', 'lang': 'fr'},
            {'id': 'alpha', 'lang': 'fr'},
        ]


class TestImportExportTools:
    """Tests for import_file, export_file and export_target_files."""

    def test_import_resx(self, muidb_file, tmp_path):
        resx = tmp_path / 'Strings.fr.resx'
        write_resx(resx, [ResXEntry('alpha', 'Alpha', ''), ResXEntry('omega', 'Oméga', 'Last')])

        result = json.loads(call(
            'import_file', file_path=str(muidb_file), input_path=str(resx),
            format='resx', lang='fr',
        ))

        assert result == {
            'added_items': ['omega'],
            'updated_items': ['alpha'],
            'skipped_items': [],
        }
        # Imports are saved right away
        saved = MuiDBFile(muidb_file)
        assert saved.get_languages() == ['de', 'en', 'fr']
        assert saved.get_item('omega').texts['fr'].value == 'Oméga'

    def test_import_xliff(self, muidb_file, tmp_path):
        xliff = tmp_path / 'Strings.fr.xlf'
        xliff.write_bytes('''<?xml version="1.0" encoding="utf-8"?>
<xliff version="1.2" xmlns="urn:oasis:names:tc:xliff:document:1.2">
  <file source-language="en" target-language="fr" datatype="plaintext" original="x">
    <body>
      <trans-unit id="alpha"><source>Alpha</source><target state="final">Alpha</target></trans-unit>
      <trans-unit id="zeta"><source>Zed</source></trans-unit>
    </body>
  </file>
</xliff>'''.encode('utf-8'))

        result = json.loads(call(
            'import_file', file_path=str(muidb_file), input_path=str(xliff),
            format='xliff', lang='fr',
        ))

        assert result['updated_items'] == ['alpha']
        assert result['skipped_items'] == ['zeta']
        assert MuiDBFile(muidb_file).get_item('alpha').texts['fr'].state == 'final'

    def test_failed_import_leaves_no_partial_changes(self, muidb_file, tmp_path):
        xliff = tmp_path / 'Strings.fr.xlf'
        xliff.write_bytes('''<?xml version="1.0" encoding="utf-8"?>
<xliff version="1.2" xmlns="urn:oasis:names:tc:xliff:document:1.2">
  <file source-language="en" target-language="fr" datatype="plaintext" original="x">
    <body>
      <trans-unit id="ok"><source>X</source><target state="translated">X</target></trans-unit>
      <trans-unit id="bad"><source>Y</source><target state="bogus">Y</target></trans-unit>
    </body>
  </file>
</xliff>'''.encode('utf-8'))

        text = call(
            'import_file', file_path=str(muidb_file), input_path=str(xliff),
            format='xliff', lang='fr',
        )
        assert text.startswith("Error: The state 'bogus' is unknown")

        # A later save must not write the units imported before the failure
        call('save_muidb', file_path=str(muidb_file))
        saved = MuiDBFile(muidb_file)
        assert saved.get_item('ok') is None
        assert saved.get_languages() == ['de', 'en']

        items = json.loads(call('read_muidb', file_path=str(muidb_file)))
        assert 'ok' not in [item['id'] for item in items]

    def test_import_wrong_extension(self, muidb_file, tmp_path):
        text = call(
            'import_file', file_path=str(muidb_file), input_path=str(tmp_path / 'a.xlf'),
            format='resx', lang='fr',
        )
        assert text.startswith('Error: Invalid file type')

    def test_unknown_format(self, muidb_file, tmp_path):
        text = call(
            'import_file', file_path=str(muidb_file), input_path=str(tmp_path / 'a.po'),
            format='gettext', lang='fr',
        )
        assert text.startswith('Error: unknown format: gettext')

    def test_export_resx(self, muidb_file, tmp_path):
        output = tmp_path / 'Strings.en.resx'
        text = call(
            'export_file', file_path=str(muidb_file), output_path=str(output),
            format='resx', lang='en', sort=True, no_comments=True,
        )

        assert text.startswith("Exported language 'en'")
        assert read_resx(output) == [ResXEntry('alpha', 'Alpha'), ResXEntry('zeta', 'Zed')]

    def test_export_unconfigured_language(self, muidb_file, tmp_path):
        text = call(
            'export_file', file_path=str(muidb_file), output_path=str(tmp_path / 'x.resx'),
            format='resx', lang='fr',
        )
        assert text == "Error: 'fr' is not a configured language."

    def test_export_xliff_not_supported(self, muidb_file, tmp_path):
        output = tmp_path / 'Strings.en.xlf'
        text = call(
            'export_file', file_path=str(muidb_file), output_path=str(output),
            format='xliff', lang='en',
        )
        assert text == 'Error: xliff export is not implemented, yet'
        assert not output.exists()

    def test_export_target_files(self, muidb_file, tmp_path):
        written = json.loads(call('export_target_files', file_path=str(muidb_file)))

        assert len(written) == 1
        assert Path(written[0]).name == 'Strings.de.resx'
        entries = read_resx(tmp_path / 'Strings.de.resx')
        assert {e.id: e.value for e in entries} == {'zeta': 'Zett', 'alpha': 'Alpha'}


class TestStoreCache:
    """Tests for store caching and path resolution."""

    def test_same_store_returned(self, muidb_file):
        assert get_store(str(muidb_file)) is get_store(str(muidb_file))

    def test_modified_file_reloaded(self, muidb_file):
        store = get_store(str(muidb_file))
        mtime = muidb_file.stat().st_mtime
        os.utime(muidb_file, (mtime + 10, mtime + 10))

        assert get_store(str(muidb_file)) is not store

    def test_oldest_entry_evicted(self, tmp_path, monkeypatch):
        monkeypatch.setattr(cache, 'CACHE_MAX_SIZE', 2)
        paths = []
        for name in ('a.xml', 'b.xml', 'c.xml'):
            path = tmp_path / name
            path.write_bytes(SAMPLE_MUIDB.encode('utf-8'))
            paths.append(path)

        first = get_store(str(paths[0]))
        get_store(str(paths[1]))
        get_store(str(paths[2]))

        assert len(cache._store_cache) == 2
        assert get_store(str(paths[0])) is not first

    def test_clear_single_entry(self, muidb_file):
        store = get_store(str(muidb_file))
        clear_store_cache(str(muidb_file))
        assert get_store(str(muidb_file)) is not store

    def test_unsaved_new_store_cached(self, tmp_path):
        path = tmp_path / 'new.xml'
        store = get_store(str(path), create=True)
        assert get_store(str(path), create=True) is store

    def test_relative_path_resolved_against_search_directories(self, muidb_file, tmp_path):
        other = tmp_path / 'other'
        other.mkdir()
        set_search_directories([other, tmp_path])

        assert resolve_file_path('strings.xml') == muidb_file.resolve()
        assert resolve_file_path('new.xml', must_exist=False) == (other / 'new.xml').resolve()

    def test_relative_path_not_found(self, tmp_path):
        set_search_directories([tmp_path])
        with pytest.raises(FileNotFoundError):
            resolve_file_path('missing.xml')


class TestCommandLine:
    """Tests for argument and environment handling of the entry point."""

    def test_directories_from_arguments(self, tmp_path, monkeypatch):
        monkeypatch.delenv('MUIDB_SEARCH_DIRS', raising=False)
        args = parse_args(['-d', str(tmp_path), '--directory', str(tmp_path / 'missing')])
        assert get_search_directories(args) == [tmp_path.resolve()]

    def test_directories_from_environment(self, tmp_path, monkeypatch):
        first = tmp_path / 'first'
        second = tmp_path / 'second'
        first.mkdir()
        second.mkdir()
        monkeypatch.setenv('MUIDB_SEARCH_DIRS', os.pathsep.join([str(first), str(second)]))

        assert get_search_directories(parse_args([])) == [first.resolve(), second.resolve()]

    def test_arguments_take_precedence(self, tmp_path, monkeypatch):
        monkeypatch.setenv('MUIDB_SEARCH_DIRS', str(tmp_path))
        other = tmp_path / 'other'
        other.mkdir()
        assert get_search_directories(parse_args(['-d', str(other)])) == [other.resolve()]

    def test_no_directories(self, monkeypatch):
        monkeypatch.delenv('MUIDB_SEARCH_DIRS', raising=False)
        assert get_search_directories(parse_args([])) == []


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
