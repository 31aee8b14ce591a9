"""
Run the Bilbul API locally and print a walkthrough of a split session.
"""

import uvicorn

if __name__ == "__main__":
    print("=" * 60)
    print("Starting Bilbul Backend Demo")
    print("=" * 60)
    print()
    print("📌 API Endpoints:")
    print("   - Health Check:  GET  http://localhost:8000/health")
    print("   - New split:     POST http://localhost:8000/splits")
    print("   - API Docs:           http://localhost:8000/docs")
    print()
    print("🔐 Authentication:")
    print("   Optional. Send X-Client-Id: <device id> to be metered as anonymous,")
    print("   or Authorization: Bearer <token> once signed in.")
    print()
    print("📝 Walkthrough with curl:")
    print('   curl -X POST "http://localhost:8000/splits"')
    print('   curl -X POST "http://localhost:8000/splits/<id>/receipt" \\')
    print('     -H "X-Client-Id: my-laptop" \\')
    print('     -F "image=@/path/to/receipt.jpg" -F "number_of_people=2"')
    print('   curl -X POST "http://localhost:8000/splits/<id>/confirm-items"')
    print('   curl -X POST "http://localhost:8000/splits/<id>/suggestion"')
    print('   curl "http://localhost:8000/splits/<id>/summary"')
    print()
    print("=" * 60)
    print("Starting server on http://localhost:8000")
    print("Press Ctrl+C to stop")
    print("=" * 60)
    print()

    uvicorn.run(
        "bilbul.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
