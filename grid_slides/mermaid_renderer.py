#!/usr/bin/env python3
"""
Rasterise Mermaid diagrams to PNG with a headless browser.
"""

import hashlib
import html
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

from pyppeteer import launch

logger = logging.getLogger(__name__)

MERMAID_CDN = "https://cdn.jsdelivr.net/npm/mermaid@10/dist/mermaid.min.js"

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<script src="{script}"></script>
<style>body {{ margin: 0; background: transparent; }}</style>
</head>
<body>
<pre class="mermaid">{source}</pre>
<script>
  mermaid.initialize({{ startOnLoad: false, theme: "default" }});
  mermaid.run().then(() => {{ window.__mermaidDone = true; }})
               .catch(() => {{ window.__mermaidFailed = true; }});
</script>
</body>
</html>
"""


class MermaidRenderer:
    """
    Renders Mermaid sources to PNG files, cached by content hash.
    """

    def __init__(self, cache_dir, script_url: str = MERMAID_CDN, timeout_ms: int = 30000,
                 scale: int = 2):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.script_url = script_url
        self.timeout_ms = timeout_ms
        self.scale = scale

    def cache_path(self, source: str) -> Path:
        digest = hashlib.md5(source.encode('utf-8')).hexdigest()
        return self.cache_dir / f"mermaid_{digest}.png"

    async def _launch(self):
        return await launch(args=['--no-sandbox', '--disable-setuid-sandbox'])

    async def _render_page(self, browser, source: str, target: Path) -> Optional[Path]:
        page = await browser.newPage()
        try:
            await page.setViewport({'width': 1200, 'height': 800, 'deviceScaleFactor': self.scale})
            await page.setContent(_PAGE_TEMPLATE.format(script=self.script_url, source=html.escape(source)))
            await page.waitForFunction(
                'window.__mermaidDone === true || window.__mermaidFailed === true',
                {'timeout': self.timeout_ms},
            )
            if await page.evaluate('window.__mermaidFailed === true'):
                logger.warning("Mermaid could not parse diagram: %s", source.split('\n')[0])
                return None
            svg = await page.querySelector('pre.mermaid svg')
            if svg is None:
                logger.warning("Mermaid produced no SVG for diagram: %s", source.split('\n')[0])
                return None
            await svg.screenshot({'path': str(target), 'omitBackground': True})
        finally:
            await page.close()

        logger.debug("Rendered Mermaid diagram to %s", target)
        return target

    async def render(self, source: str, browser=None) -> Optional[Path]:
        """
        Render one diagram.

        Args:
            source: Mermaid source text
            browser: Running browser to open the page in; one is launched
                and closed for this diagram alone when omitted

        Returns:
            Path to the PNG, or None when the diagram could not be rendered
        """
        target = self.cache_path(source)
        if target.exists():
            logger.debug("Using cached Mermaid diagram %s", target.name)
            return target

        own_browser = None
        try:
            if browser is None:
                browser = own_browser = await self._launch()
            return await self._render_page(browser, source, target)
        except Exception as exc:
            logger.warning("Mermaid rendering failed: %s", exc)
            return None
        finally:
            if own_browser is not None:
                await own_browser.close()

    async def render_all(self, sources: Iterable[str]) -> Dict[str, Path]:
        """
        Render every distinct source; failures are left out of the result.

        One browser is shared by all diagrams that are not cached yet, and
        none is started when every diagram is cached.
        """
        rendered: Dict[str, Path] = {}
        pending = []
        for source in sources:
            if source in rendered or source in pending:
                continue
            cached = self.cache_path(source)
            if cached.exists():
                logger.debug("Using cached Mermaid diagram %s", cached.name)
                rendered[source] = cached
            else:
                pending.append(source)

        if not pending:
            return rendered

        try:
            browser = await self._launch()
        except Exception as exc:
            logger.warning("Could not start a browser for %d Mermaid diagrams: %s", len(pending), exc)
            return rendered

        try:
            for source in pending:
                path = await self.render(source, browser=browser)
                if path is not None:
                    rendered[source] = path
        finally:
            await browser.close()
        return rendered
