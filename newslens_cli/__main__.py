from newslens_cli.engine_cmd import main

main()
