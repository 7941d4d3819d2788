#!/usr/bin/env python3
"""
Main slide generator module that ties together parsing, layout and rendering.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import List, Optional

from .errors import GenerationError, GridSlidesError, ParseError
from .layout_engine import layout_document
from .markdown_parser import MarkdownParser
from .mermaid_renderer import MermaidRenderer
from .models import GridConfig, LayoutResult, ParsedDocument
from .paths import prepare_workspace
from .plugins import PluginRegistry, default_registry
from .pptx_renderer import PPTXRenderer

logger = logging.getLogger(__name__)

PLUGIN_DIR_ENV = "GRIDSLIDES_PLUGIN_DIR"


class SlideGenerator:
    """
    Main class for generating PowerPoint slides from grid-annotated Markdown.
    """

    def __init__(
        self,
        *,
        output_dir,
        base_dir: Optional[str] = None,
        keep_tmp: bool = False,
        debug: bool = False,
        grid: Optional[GridConfig] = None,
        plugin_dir: Optional[str] = None,
        render_mermaid: bool = True,
        registry: Optional[PluginRegistry] = None,
    ):
        """Create a new :class:`SlideGenerator`.

        Parameters
        ----------
        output_dir
            Directory where the final PPTX will be written. *Required*.
        base_dir
            Base directory for resolving relative image paths in markdown.
            If None, defaults to current working directory.
        keep_tmp
            Leave the ``.gridslides_tmp`` scratch directory on disk.
        debug
            Enable verbose logging.
        grid
            Grid that overrides every ``grid:`` front matter entry.
        plugin_dir
            Directory of plugin files; defaults to ``$GRIDSLIDES_PLUGIN_DIR``.
        render_mermaid
            Rasterise Mermaid diagrams with a headless browser. When False
            diagrams are drawn as code.
        """
        self.debug = debug
        self.grid = grid
        self.render_mermaid = render_mermaid
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self.registry = registry or default_registry

        if debug:
            logging.getLogger("grid_slides").setLevel(logging.DEBUG)

        self.paths = prepare_workspace(output_dir, keep_tmp=keep_tmp)

        plugin_dir = plugin_dir or os.getenv(PLUGIN_DIR_ENV)
        if plugin_dir:
            self.registry.load_plugins(plugin_dir)

        self.parser = MarkdownParser(grid=grid, registry=self.registry)

    def parse(self, markdown_text: str) -> ParsedDocument:
        return self.parser.parse(markdown_text)

    def layout(self, document: ParsedDocument) -> List[LayoutResult]:
        return layout_document(document, sizes=self.registry.sizes)

    async def _render_diagrams(self, layouts: List[LayoutResult]):
        sources = [e.content for layout in layouts for e in layout.elements if e.type == 'mermaid']
        if not sources or not self.render_mermaid:
            return {}
        renderer = MermaidRenderer(self.paths["tmp_dir"] / "mermaid")
        return await renderer.render_all(sources)

    def _resolve_output_path(self, output_path) -> Path:
        output_path = str(output_path)
        if not output_path.endswith('.pptx'):
            output_path = f"{output_path}.pptx"

        path = Path(output_path)
        if not path.is_absolute() and len(path.parts) == 1:
            # a bare filename goes into the output directory
            path = Path(self.paths["output_dir"]) / path
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def _backup(self, output_path: Path) -> Optional[Path]:
        if not output_path.exists():
            return None
        backup_path = Path(self.paths["tmp_dir"]) / f"{output_path.name}.bak"
        shutil.copy2(output_path, backup_path)
        logger.debug("Backed up %s to %s", output_path, backup_path)
        return backup_path

    async def generate(self, markdown_text: str, output_path="presentation.pptx") -> str:
        """
        Generate a PowerPoint presentation from markdown text.

        Args:
            markdown_text: The markdown content to convert
            output_path: Path where the PPTX file should be saved

        Returns:
            str: Path to the generated PPTX file

        Raises:
            GridSlidesError: Parsing, layout or rendering failed. A file that
                already existed at ``output_path`` is restored.
        """
        output_path = self._resolve_output_path(output_path)

        document = self.parse(markdown_text)
        layouts = self.layout(document)
        mermaid_images = await self._render_diagrams(layouts)

        try:
            renderer = PPTXRenderer(
                theme=document.front_matter.get('theme'),
                custom_classes=document.front_matter.get('classes'),
                base_dir=self.base_dir,
                registry=self.registry,
            )
        except ValueError as exc:
            raise ParseError(
                str(exc),
                element="front matter",
                suggestion="Use one of the built-in themes: default, dark",
            ) from exc

        backup_path = self._backup(output_path)
        try:
            renderer.render(
                layouts, output_path,
                title=document.front_matter.get('title'),
                mermaid_images=mermaid_images,
            )
        except Exception as exc:
            if backup_path is not None:
                shutil.copy2(backup_path, output_path)
                logger.info("Restored previous %s", output_path)
            elif output_path.exists():
                output_path.unlink()
            if isinstance(exc, GridSlidesError):
                raise
            raise GenerationError(str(exc), file_path=str(output_path)) from exc

        logger.info("Generated %d slides (%d diagrams rendered)", len(layouts), len(mermaid_images))
        return str(output_path)


def main(argv=None):
    """Command-line entry point for the slide generator."""
    import argparse
    import asyncio
    import sys

    def _build_parser() -> argparse.ArgumentParser:
        p = argparse.ArgumentParser(prog="gridslides", description="Convert grid-annotated Markdown to a PPTX presentation.")
        p.add_argument("markdown", type=Path, help="Markdown file to convert")
        p.add_argument("--output", "-o", type=Path, default=Path("output/presentation.pptx"), help="Destination PPTX path")
        p.add_argument("--grid", help="Grid size such as 12x9; overrides the front matter")
        p.add_argument("--asset-base", type=Path, help="Base directory for resolving relative asset paths (default: parent of markdown file)")
        p.add_argument("--plugin-dir", type=Path, help="Directory of plugin files")
        p.add_argument("--no-mermaid", action="store_true", help="Draw Mermaid diagrams as code instead of rendering them")
        p.add_argument("--keep-tmp", action="store_true", help="Keep .gridslides_tmp directory after run")
        p.add_argument("--debug", action="store_true", help="Enable verbose logging")
        return p

    async def _generate_async(args) -> str:
        md_path: Path = args.markdown
        asset_base = args.asset_base if args.asset_base else md_path.parent
        markdown_text = md_path.read_text(encoding="utf-8")

        generator = SlideGenerator(
            output_dir=args.output.parent,
            base_dir=asset_base,
            keep_tmp=args.keep_tmp,
            debug=args.debug,
            grid=GridConfig.parse(args.grid) if args.grid else None,
            plugin_dir=args.plugin_dir,
            render_mermaid=not args.no_mermaid,
        )
        return await generator.generate(markdown_text, args.output)

    args = _build_parser().parse_args(argv)
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if not args.markdown.exists():
        logger.error("Markdown file '%s' not found", args.markdown)
        sys.exit(1)

    try:
        output_path = asyncio.run(_generate_async(args))
    except GridSlidesError as exc:
        logger.error("%s", exc)
        sys.exit(1)

    logger.info("Presentation written to %s", output_path)


if __name__ == "__main__":
    main()
