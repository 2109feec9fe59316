"""Cross-cutting helpers: errors, logging, settings, identity, HTTP."""
