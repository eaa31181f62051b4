"""
Notice-board resources (students, notices, archive) behind one generic CRUD surface.
"""
