"""Shared TypeScript helper module imported by frame-aware specs."""

FIND_IN_FRAME_FUNCTION = "findInFrame"

FIND_IN_FRAME_HELPER_SOURCE = """\
import { Page, Locator } from "@playwright/test";

/**
 * Search for an element in iframes first, then fall back to the main page.
 * Recorded browser tests address iframe content transparently; this keeps
 * that behaviour for steps whose element was observed inside an iframe.
 */
export async function findInFrame(page: Page, selector: string): Promise<Locator> {
  for (const frame of page.frames()) {
    if (frame === page.mainFrame()) continue;
    const el = frame.locator(selector);
    if (await el.count() > 0) {
      console.log(`[findInFrame] Found "${selector}" in iframe: ${frame.url()}`);
      return el;
    }
  }

  console.log(`[findInFrame] "${selector}" not in any iframe, using main page`);
  return page.locator(selector);
}
"""
