import uvicorn
from config import config
from utils.logging_utils import apply_log_level

if __name__ == "__main__":
    # Initialize application configuration from command line arguments
    config.setup_from_args()
    apply_log_level()

    from main import app

    # Display startup information with available command-line options
    print("\n" + "="*60)
    print("Workout Session Engine Backend")
    print("="*60)
    print(f"Mode: {config.mode_description}")
    print("\nAvailable modes:")
    print("  python run.py --mode debug      # Log every session transition")
    print("  python run.py --mode non_debug  # Minimal logging only")
    print("  python run.py --port 9000       # Listen on another port")
    print("="*60 + "\n")

    uvicorn.run(app, host=config.host, port=config.port)
