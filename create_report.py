import sys

import requests

BASE_URL = "http://127.0.0.1:3002"

# Submit a report (with a photo if a path is given) against a running server
print("Submitting a report...")
report_data = {
    "lat": "22.9970",
    "lng": "120.2170",
    "type": "Street Light",
    "status": "Dim lighting",
    "description": "Light in front of the library is barely visible at night.",
    "urgency": "Medium",
}

files = None
if len(sys.argv) > 1:
    photo_path = sys.argv[1]
    files = {"photo": (photo_path.split("/")[-1], open(photo_path, "rb"), "image/jpeg")}

response = requests.post(f"{BASE_URL}/reports", data=report_data, files=files, timeout=30)
print("Status code:", response.status_code)
if response.status_code != 201:
    print("Error creating report:", response.text)
    sys.exit(1)

report = response.json()
print("Report created:", report)

# Reclassify it; a local photo moves to the "other" folder
print("\nChanging type to a custom category...")
response = requests.put(f"{BASE_URL}/reports/{report['_id']}", data={"type": "Fallen tree"}, timeout=30)
print("Status code:", response.status_code)
print("Updated report:", response.json())
