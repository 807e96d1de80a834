from apgcheck.cli import main

main()
