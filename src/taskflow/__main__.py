from taskflow.cli.main import main

main()
