"""Routing of one listening socket into HTTP and raw protocol listeners."""