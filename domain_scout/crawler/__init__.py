"""Network-facing discovery components: fetching, robots, sitemaps and link following."""
