from ep.cli.app import main

main()
