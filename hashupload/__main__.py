from hashupload.cli.cli import cli

cli()
