"""
The journals which send us deposits, the lists of journals the staff
keeps, and the checks that these journals are still alive: pings of
their PLN gateway and health checks for silent journals.
"""
