"""
MCP Server for MuiDB File Operations

This server exposes tools for reading, validating, importing into and
exporting from MuiDB localization databases through the Model Context
Protocol (MCP).
"""

import json
import os
import sys
import traceback
from dataclasses import asdict
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.types import Tool, TextContent
from mcp.server.stdio import stdio_server
import logging

from .cache import (
    clear_store_cache,
    get_store,
    is_store_cached,
    resolve_file_path,
    validate_file_extension,
)
from .constants import DEFAULT_IMPORT_STATE, ENV_LOG_FILE, ENV_LOG_LEVEL
from .errors import MissingTranslationsError, MuiDBError
from .resx import ExportOptions, export_resx, export_target_files, import_resx
from .xliff import export_xliff, import_xliff


def setup_logging():
    """Set up logging to stderr and, if configured, to a log file."""
    handlers = [logging.StreamHandler(sys.stderr)]  # Always log to stderr

    log_file = os.environ.get(ENV_LOG_FILE)
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, mode='a'))
        except (PermissionError, OSError) as e:
            print(f"Can not write log file {log_file}: {e}", file=sys.stderr)

    level_name = os.environ.get(ENV_LOG_LEVEL, 'INFO').upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
    return logging.getLogger("muidb-server")

logger = setup_logging()

INTERCHANGE_FORMATS = ("resx", "xliff")

# Create the MCP server instance
app = Server("muidb-server")


def _text(message: str) -> list[TextContent]:
    return [TextContent(type="text", text=message)]


def _json(data: Any) -> list[TextContent]:
    return _text(json.dumps(data, indent=2, ensure_ascii=False))


def _file_path_property(description: str = "Path to the MuiDB file") -> dict:
    return {"type": "string", "description": description}


def _interchange_format(value: str) -> str:
    file_format = value.lower()
    if file_format not in INTERCHANGE_FORMATS:
        raise ValueError(
            f"unknown format: {value} (expected one of: {', '.join(INTERCHANGE_FORMATS)})"
        )
    return file_format


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available MuiDB tools."""
    return [
        Tool(
            name="read_muidb",
            description=(
                "Read all items of a MuiDB file. Returns each item's id, its texts "
                "per language (value and state) and its comment."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _file_path_property(),
                },
                "required": ["file_path"],
            },
        ),
        Tool(
            name="get_muidb_info",
            description=(
                "Get statistics about a MuiDB file: item count, configured languages, "
                "text counts by state, comment count and declared target files."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _file_path_property(),
                },
                "required": ["file_path"],
            },
        ),
        Tool(
            name="add_or_update_string",
            description=(
                "Add a text to an item or update it. The state may be given in MuiDB, "
                "XLIFF 1.2 or XLIFF 2.0 terms and is converted to a MuiDB state. "
                "Changes are made in memory; call save_muidb to persist them."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _file_path_property(),
                    "item_id": {"type": "string", "description": "Id of the item"},
                    "lang": {
                        "type": "string",
                        "description": "Language of the text ('*' or empty for all languages)",
                    },
                    "text": {"type": "string", "description": "The text"},
                    "state": {
                        "type": "string",
                        "description": "Workflow state (default: new)",
                    },
                    "comment": {"type": "string", "description": "Optional item comment"},
                    "create": {
                        "type": "boolean",
                        "description": "Start a new MuiDB file if it does not exist",
                    },
                },
                "required": ["file_path", "item_id", "lang", "text"],
            },
        ),
        Tool(
            name="set_languages",
            description=(
                "Replace the configured languages of a MuiDB file. "
                "Changes are made in memory; call save_muidb to persist them."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _file_path_property(),
                    "languages": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Language tags, e.g. ['de', 'en']",
                    },
                },
                "required": ["file_path", "languages"],
            },
        ),
        Tool(
            name="validate_muidb",
            description=(
                "Validate a MuiDB file against its schema and check that every item "
                "has a text for every configured language."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _file_path_property(),
                },
                "required": ["file_path"],
            },
        ),
        Tool(
            name="save_muidb",
            description=(
                "Save changes made to a MuiDB file. Items are written sorted by id. "
                "Can optionally save to a different file path."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _file_path_property(),
                    "output_path": {
                        "type": "string",
                        "description": "Optional output path. If not provided, overwrites the original file.",
                    },
                },
                "required": ["file_path"],
            },
        ),
        Tool(
            name="format_muidb",
            description=(
                "Rewrite a MuiDB file in its canonical format (items sorted by id). "
                "Pending in-memory changes are saved along with it."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _file_path_property(),
                },
                "required": ["file_path"],
            },
        ),
        Tool(
            name="import_file",
            description=(
                "Import translations for one language from a ResX or XLIFF file into a "
                "MuiDB file and save it. Existing texts of that language are overwritten."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _file_path_property(),
                    "input_path": {"type": "string", "description": "The file to import from"},
                    "format": {
                        "type": "string",
                        "enum": ["resx", "xliff"],
                        "description": "Format of the input file",
                    },
                    "lang": {"type": "string", "description": "Language of the imported texts"},
                    "create": {
                        "type": "boolean",
                        "description": "Start a new MuiDB file if it does not exist",
                    },
                },
                "required": ["file_path", "input_path", "format", "lang"],
            },
        ),
        Tool(
            name="export_file",
            description="Export one language of a MuiDB file into a ResX file.",
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _file_path_property(),
                    "output_path": {"type": "string", "description": "The file to write"},
                    "format": {
                        "type": "string",
                        "enum": ["resx", "xliff"],
                        "description": "Format of the output file",
                    },
                    "lang": {"type": "string", "description": "Language to export"},
                    "no_comments": {
                        "type": "boolean",
                        "description": "Do not include comments in the output file",
                    },
                    "sort": {
                        "type": "boolean",
                        "description": "Sort entries by id",
                    },
                },
                "required": ["file_path", "output_path", "format", "lang"],
            },
        ),
        Tool(
            name="export_target_files",
            description=(
                "Export all target files declared in the settings of a MuiDB file. "
                "Paths are relative to the MuiDB file."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _file_path_property(),
                },
                "required": ["file_path"],
            },
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""

    logger.info(f"call_tool: {name} with arguments: {arguments}")

    try:
        if name == "read_muidb":
            store = get_store(arguments["file_path"])
            items = [asdict(item) for item in store.items]
            logger.info(f"Read {len(items)} items")
            return _json(items)

        elif name == "get_muidb_info":
            store = get_store(arguments["file_path"])
            return _json(store.get_statistics())

        elif name == "add_or_update_string":
            file_path = arguments["file_path"]
            store = get_store(file_path, create=arguments.get("create", False))
            result = store.add_or_update_string(
                arguments["item_id"],
                arguments["lang"],
                arguments["text"],
                arguments.get("state") or DEFAULT_IMPORT_STATE,
                arguments.get("comment"),
            )
            return _text(
                f"{result.value.capitalize()} item '{arguments['item_id']}'. "
                f"Remember to call save_muidb to persist changes."
            )

        elif name == "set_languages":
            store = get_store(arguments["file_path"])
            store.set_languages(arguments["languages"])
            return _text(
                f"Languages set to: {';'.join(store.get_languages())}. "
                f"Remember to call save_muidb to persist changes."
            )

        elif name == "validate_muidb":
            store = get_store(arguments["file_path"])
            store.validate()
            return _text(f"'{store.path}' is valid.")

        elif name == "save_muidb":
            file_path = arguments["file_path"]
            output_path = arguments.get("output_path")

            if output_path:
                validate_file_extension(output_path, 'muidb')
                output_path = resolve_file_path(output_path, must_exist=False)

            # Only stores started with create=True may be missing on disk
            store = get_store(file_path, create=is_store_cached(file_path))
            store.save(output_path)

            # Clear cache after saving
            clear_store_cache(file_path)

            save_location = output_path if output_path else store.path
            return _text(f"Successfully saved MuiDB file to: {save_location}")

        elif name == "format_muidb":
            file_path = arguments["file_path"]
            store = get_store(file_path)
            store.save()
            clear_store_cache(file_path)
            return _text(f"Formatted '{store.path}'.")

        elif name == "import_file":
            file_path = arguments["file_path"]
            file_format = _interchange_format(arguments["format"])
            lang = arguments["lang"]
            validate_file_extension(arguments["input_path"], file_format)
            input_path = resolve_file_path(arguments["input_path"])

            store = get_store(file_path, create=arguments.get("create", False))
            logger.info(f"adding/updating resources for language '{lang}' from {input_path}")
            try:
                if file_format == "resx":
                    result = import_resx(store, input_path, lang)
                else:
                    result = import_xliff(store, input_path, lang)
            except Exception:
                # Drop the partially imported store; the file on disk is untouched
                clear_store_cache(file_path)
                raise

            store.save()
            clear_store_cache(file_path)
            logger.info(
                f"Imported {len(result.added_items)} new and "
                f"{len(result.updated_items)} updated items"
            )
            return _json(result.to_dict())

        elif name == "export_file":
            file_format = _interchange_format(arguments["format"])
            lang = arguments["lang"]
            validate_file_extension(arguments["output_path"], file_format)
            output_path = resolve_file_path(arguments["output_path"], must_exist=False)

            store = get_store(arguments["file_path"])
            if file_format == "xliff":
                export_xliff(store, output_path, lang)

            options = ExportOptions.NONE
            if arguments.get("sort"):
                options |= ExportOptions.SORT_ENTRIES
            if arguments.get("no_comments"):
                options |= ExportOptions.SKIP_COMMENTS

            logger.info(f"exporting language '{lang}' into file '{output_path}'")
            export_resx(store, output_path, lang, options)
            return _text(f"Exported language '{lang}' to: {output_path}")

        elif name == "export_target_files":
            store = get_store(arguments["file_path"])
            written = export_target_files(store)
            for path in written:
                logger.info(f"exported target file '{path}'")
            return _json([str(path) for path in written])

        else:
            return _text(f"Unknown tool: {name}")

    except MissingTranslationsError as e:
        return _json({
            "error": "missing translations",
            "missing": [{"id": item_id, "lang": lang} for item_id, lang in e.items],
        })
    except FileNotFoundError as e:
        file_path = arguments.get("file_path", "unknown")
        resolved_path = str(Path(file_path).resolve())
        return _text(
            f"File not found.\nRequested: {file_path}\nResolved to: {resolved_path}\nError: {str(e)}"
        )
    except (MuiDBError, ValueError) as e:
        return _text(f"Error: {str(e)}")
    except Exception as e:
        logger.exception(f"call_tool {name} failed")
        error_details = traceback.format_exc()
        return _text(f"Error: {str(e)}\n\nDetails:\n{error_details}")


async def main():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await app.run(
            read_stream,
            write_stream,
            app.create_initialization_options(),
        )
