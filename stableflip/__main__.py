from stableflip.main import cli

cli()
