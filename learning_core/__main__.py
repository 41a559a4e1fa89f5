from learning_core.cli import main

main()
