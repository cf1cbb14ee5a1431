"""site_mapper.parser: turning fetched bytes into queryable documents."""
