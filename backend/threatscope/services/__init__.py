"""Services package - business logic over storage, agents and the scraper."""
