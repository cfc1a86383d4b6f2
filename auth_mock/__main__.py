from auth_mock.cli import main

main()
