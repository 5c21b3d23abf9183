from mytodos.main import run

run()
