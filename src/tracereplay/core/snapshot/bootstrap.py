"""Markup appended to every rendered snapshot.

The recorder serializes state that plain HTML cannot carry (scroll offsets,
shadow roots, adopted stylesheets) into marker attributes and inert
``<template>`` elements. The bootstrap script below turns them back into live
DOM state once the snapshot is loaded by the viewer. The attribute names are
part of the recorded format and must match what the recorder wrote.
"""

from __future__ import annotations

from typing import Final

TARGET_ATTRIBUTE: Final[str] = "__playwright_target__"
SHADOW_ROOT_ATTRIBUTE: Final[str] = "__playwright_shadow_root_"
SCROLL_TOP_ATTRIBUTE: Final[str] = "__playwright_scroll_top_"
SCROLL_LEFT_ATTRIBUTE: Final[str] = "__playwright_scroll_left_"
STYLE_SHEET_ATTRIBUTE: Final[str] = "__playwright_style_sheet_"

BLANK_FRAME_SRC: Final[str] = 'data:text/html,<body style="background: #ddd"></body>'

_BOOTSTRAP_SOURCE: Final[str] = """function(shadowAttribute, scrollTopAttribute, scrollLeftAttribute, styleSheetAttribute) {
  const scrollTops = [];
  const scrollLefts = [];

  const visit = (root) => {
    for (const e of root.querySelectorAll(`[${scrollTopAttribute}]`))
      scrollTops.push(e);
    for (const e of root.querySelectorAll(`[${scrollLeftAttribute}]`))
      scrollLefts.push(e);

    for (const iframe of root.querySelectorAll('iframe')) {
      const src = iframe.getAttribute('src');
      if (!src) {
        iframe.setAttribute('src', '%(blank)s');
      } else {
        const url = new URL(src + window.location.search, window.location.href);
        iframe.setAttribute('src', url.toString());
      }
    }

    for (const template of root.querySelectorAll(`template[${shadowAttribute}]`)) {
      const shadowRoot = template.parentElement.attachShadow({ mode: 'open' });
      shadowRoot.appendChild(template.content);
      template.remove();
      visit(shadowRoot);
    }

    if ('adoptedStyleSheets' in root) {
      const adopted = [...root.adoptedStyleSheets];
      for (const template of root.querySelectorAll(`template[${styleSheetAttribute}]`)) {
        const sheet = new CSSStyleSheet();
        sheet.replaceSync(template.getAttribute(styleSheetAttribute));
        adopted.push(sheet);
      }
      root.adoptedStyleSheets = adopted;
    }
  };
  visit(document);

  const onLoad = () => {
    window.removeEventListener('load', onLoad);
    for (const element of scrollTops) {
      element.scrollTop = +element.getAttribute(scrollTopAttribute);
      element.removeAttribute(scrollTopAttribute);
    }
    for (const element of scrollLefts) {
      element.scrollLeft = +element.getAttribute(scrollLeftAttribute);
      element.removeAttribute(scrollLeftAttribute);
    }

    const search = new URL(window.location.href).searchParams;
    const pointX = search.get('pointX');
    const pointY = search.get('pointY');
    if (pointX) {
      const pointer = document.createElement('x-pw-pointer');
      pointer.style.position = 'fixed';
      pointer.style.backgroundColor = 'red';
      pointer.style.width = '20px';
      pointer.style.height = '20px';
      pointer.style.borderRadius = '10px';
      pointer.style.margin = '-10px 0 0 -10px';
      pointer.style.zIndex = '2147483647';
      pointer.style.left = pointX + 'px';
      pointer.style.top = pointY + 'px';
      document.documentElement.appendChild(pointer);
    }
  };
  window.addEventListener('load', onLoad);
}""" % {"blank": BLANK_FRAME_SRC}


def snapshot_epilogue(snapshot_name: str) -> str:
    """Return the ``<style>`` + ``<script>`` block appended to a snapshot.

    The style highlights elements the recorder marked as the target of the
    action that produced ``snapshot_name``.
    """
    arguments = ", ".join(
        f"'{name}'"
        for name in (
            SHADOW_ROOT_ATTRIBUTE,
            SCROLL_TOP_ATTRIBUTE,
            SCROLL_LEFT_ATTRIBUTE,
            STYLE_SHEET_ATTRIBUTE,
        )
    )
    return (
        "\n      <style>"
        f'*[{TARGET_ATTRIBUTE}="{snapshot_name}"] {{ background-color: #6fa8dc7f; }}'
        "</style>\n"
        f"      <script>\n({_BOOTSTRAP_SOURCE})({arguments})</script>\n    "
    )


__all__ = [
    "BLANK_FRAME_SRC",
    "SCROLL_LEFT_ATTRIBUTE",
    "SCROLL_TOP_ATTRIBUTE",
    "SHADOW_ROOT_ATTRIBUTE",
    "STYLE_SHEET_ATTRIBUTE",
    "TARGET_ATTRIBUTE",
    "snapshot_epilogue",
]
