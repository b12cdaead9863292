from karma.clients.disc import run

run()
