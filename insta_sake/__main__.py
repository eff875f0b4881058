from insta_sake.adapters.web.server import main

main()
