from cloudmux.cli import main

main()
