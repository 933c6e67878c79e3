from nompac.main import main

main()
