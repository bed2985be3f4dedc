from dotask.main import run

run()
