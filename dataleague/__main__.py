from dataleague.cli import main

main()
