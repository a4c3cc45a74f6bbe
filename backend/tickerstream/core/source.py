"""
Knowledge about the ticker source site (TradingView symbol pages).

Everything here is page-side: the URL for a symbol, the selectors that
carry the live price, the markers of a "symbol not found" page, and the
scripts evaluated inside the page. The supervisor and validator only
pass these strings to a PageDriver.
"""
import json
from typing import Sequence

from tickerstream.config import SourceConfig

# Candidate selectors that carry the live price text
PRICE_SELECTORS = (
    ".tv-symbol-price-quote__value",
    ".js-symbol-last",
    "[data-name='legend-last']",
    ".tv-chart-view__symbol-last",
    ".js-symbol-last-quote",
)

# Markers seen on "not found" / invalid symbol pages
INVALID_MARKERS = (
    ".tv-404",
    ".tv-not-found",
    ".tv-symbol-header__error",
    '[data-name="symbol-error"]',
    ".error-404",
)

# Consent/cookie button texts to auto-dismiss if shown
CONSENT_TEXTS = ("Accept", "I Agree", "I agree", "Allow all", "Got it", "OK", "Continue", "Agree")

# Name of the host function the page calls with each price reading
REPORT_CALLBACK_NAME = "__reportPrice"

# Interval of the in-page polling fallback
POLL_INTERVAL_MS = 1000


def source_url(symbol: str, source: SourceConfig) -> str:
    """Canonical page URL for a normalized symbol."""
    return source.url_template.format(symbol=symbol, exchange=source.exchange)


# Returns the first numeric-looking price from embedded JSON-LD, or null
JSON_LD_PRICE_SCRIPT = """
() => {
  try {
    const scripts = Array.from(document.querySelectorAll('script[type="application/ld+json"]'));
    for (const s of scripts) {
      const txt = s.textContent || "";
      if (!txt) continue;
      try {
        const json = JSON.parse(txt);
        const objs = Array.isArray(json) ? json : [json];
        for (const obj of objs) {
          const p = obj?.offers?.price ?? obj?.price ?? obj?.currentPrice ?? null;
          if (typeof p === "string" || typeof p === "number") return String(p);
        }
      } catch (e) {}
    }
  } catch (e) {}
  return null;
}
"""


_OBSERVER_TEMPLATE = """
(function() {
  const selectors = %(selectors)s;
  const consentTexts = %(consent)s;
  const invalidMarkers = %(invalid)s;
  const callbackName = %(callback)s;

  function tryDismissConsent() {
    try {
      const btns = Array.from(document.querySelectorAll('button, [role="button"], .button, .btn'));
      for (const b of btns) {
        const t = (b.textContent || "").trim();
        if (!t) continue;
        for (const want of consentTexts) {
          if (t === want || t.toLowerCase().includes(want.toLowerCase())) {
            b.click();
            return true;
          }
        }
      }
    } catch (e) {}
    return false;
  }

  function findPriceEl() {
    for (const sel of selectors) {
      const el = document.querySelector(sel);
      if (el) return el;
    }
    return null;
  }

  function hasInvalidMarker() {
    try {
      for (const sel of invalidMarkers) {
        if (document.querySelector(sel)) return true;
      }
    } catch (e) {}
    return false;
  }

  const extractJsonLdPrice = %(json_ld)s;

  function numericOrNull(text) {
    if (!text) return null;
    const cleaned = text.replace(/[^\\d.,-]/g, "").replace(/,/g, "");
    return cleaned && !isNaN(parseFloat(cleaned)) ? cleaned : null;
  }

  function sendIfNumeric(str) {
    const n = numericOrNull(str);
    if (n && window[callbackName]) {
      window[callbackName](n);
      return true;
    }
    return false;
  }

  function start() {
    tryDismissConsent();
    if (hasInvalidMarker()) return;

    let el = findPriceEl();
    const pushFromEl = () => {
      if (!el) return false;
      return sendIfNumeric((el.textContent || "").trim());
    };

    if (!pushFromEl()) {
      const jd = extractJsonLdPrice();
      if (jd) sendIfNumeric(jd);
    }

    if (el) {
      const mo = new MutationObserver(() => { pushFromEl(); });
      mo.observe(el, { childList: true, subtree: true, characterData: true });
    }

    setInterval(() => {
      if (!el) el = findPriceEl();
      if (!pushFromEl()) {
        const jd = extractJsonLdPrice();
        if (jd) sendIfNumeric(jd);
      }
    }, %(poll_ms)d);
  }

  if (document.readyState === "loading") {
    document.addEventListener("DOMContentLoaded", start, { once: true });
  } else {
    start();
  }
})();
"""


def build_observer_script(
    callback_name: str = REPORT_CALLBACK_NAME,
    selectors: Sequence[str] = PRICE_SELECTORS,
    invalid_markers: Sequence[str] = INVALID_MARKERS,
    poll_interval_ms: int = POLL_INTERVAL_MS,
) -> str:
    """Init script that pushes every price change to ``callback_name``.

    A MutationObserver watches the price element; a polling loop covers
    pages that re-render the element or only expose JSON-LD.
    """
    return _OBSERVER_TEMPLATE % {
        "selectors": json.dumps(list(selectors)),
        "consent": json.dumps(list(CONSENT_TEXTS)),
        "invalid": json.dumps(list(invalid_markers)),
        "callback": json.dumps(callback_name),
        "json_ld": JSON_LD_PRICE_SCRIPT.strip(),
        "poll_ms": poll_interval_ms,
    }


def build_title_script(symbol: str) -> str:
    """Init script that labels the tab with the symbol."""
    return f"document.title = {json.dumps(f'TV: {symbol}')};"
