"""Error catalog and the HTML pages documenting each error kind."""
