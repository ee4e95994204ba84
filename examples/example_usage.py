"""Example: drive the API through ApiClient against a running server.

Start the server first (``python app.py`` with AUTO_SEED_DB=1 for demo data).
"""

from src.academic_hub.academic_hub.client import ApiClient, ApiError


def main():
    client = ApiClient()
    client.login("robert.wilson@college.edu", "teacher123")

    timetable = client.list_timetable(branch="Computer Science", semester=6)
    print(f"{timetable['count']} timetable entries")

    students = client.list_students(branch="Computer Science", semester=6)["data"]
    try:
        result = client.mark_bulk_attendance(
            subject="Data Structures",
            branch="Computer Science",
            semester=6,
            attendanceList=[{"student": s["id"], "status": "present"} for s in students],
        )
        print(result["message"])
    except ApiError as e:
        print(f"Bulk marking failed ({e.status_code}): {e.message}")

    for row in client.attendance_stats(subject="Data Structures")["data"]:
        print(f"{row['rollNumber']} {row['student']}: {row['attendancePercentage']}%")


if __name__ == "__main__":
    main()
