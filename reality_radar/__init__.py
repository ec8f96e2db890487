"""Entity resolution and market signals for scraped real-estate listings."""
