from shulkers.cli import main

main(prog_name="shulkers")
