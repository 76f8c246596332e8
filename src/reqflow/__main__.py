from reqflow.cli import main

main()
