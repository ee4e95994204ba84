"""Academic Hub package.

Role-based academic administration API organized by feature modules
(users, timetable, attendance) with a thin Flask controller layer over
service and repository layers.
"""
