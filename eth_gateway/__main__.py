from eth_gateway.api.main import main

main()
