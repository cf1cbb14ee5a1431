from site_mapper.cli import cli

cli()
