"""site_mapper.crawler: classification, extraction, dispatch and scheduling."""
