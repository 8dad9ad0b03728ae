#!/usr/bin/env python3
import os
import sys
import subprocess
import time
import platform
import argparse
import socket

# --- Configuration ---
SERVICES = {
    "cart-service": ("services.cart_service.main:app", 8001),
    "order-service": ("services.order_service.main:app", 8002),
    "review-service": ("services.review_service.main:app", 8003),
    "session-service": ("services.session_service.main:app", 8004),
    "user-service": ("services.user_service.main:app", 8005),
    "api-gateway": ("services.api_gateway.main:app", 8000),
}
MONGO_PORT = 27017

# Service URLs as seen from localhost
LOCAL_ENV = {
    "MONGO_URL": f"mongodb://localhost:{MONGO_PORT}",
    "CART_SERVICE_URL": "http://localhost:8001",
    "ORDER_SERVICE_URL": "http://localhost:8002",
    "REVIEW_SERVICE_URL": "http://localhost:8003",
    "SESSION_SERVICE_URL": "http://localhost:8004",
    "USER_SERVICE_URL": "http://localhost:8005",
}

# --- Colors ---
class Colors:
    HEADER = '\033[95m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'

if platform.system() == "Windows":
    os.system('color')  # Enable ANSI colors in Windows terminal

def log(msg, color=Colors.ENDC, bold=False, end="\n"):
    prefix = Colors.BOLD if bold else ""
    print(f"{prefix}{color}{msg}{Colors.ENDC}", end=end, flush=True)

def print_header():
    log("\n" + "═" * 40, Colors.HEADER)
    log("NOMNOM BACKEND - PORT CLEANUP & START", Colors.HEADER, bold=True)
    log("═" * 40 + "\n", Colors.HEADER)

# --- Port Management ---

def get_process_on_port(port):
    """Finds the PID of the process listening on the given port."""
    try:
        if platform.system() == "Windows":
            cmd = f'netstat -ano | findstr :{port}'
            result = subprocess.run(cmd, shell=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
            for line in result.stdout.strip().split('\n'):
                if f":{port}" in line and "LISTENING" in line:
                    return line.strip().split()[-1]
        else:
            result = subprocess.run(['lsof', '-t', f'-i:{port}'], stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
            if result.returncode == 0 and result.stdout:
                return result.stdout.strip().split('\n')[0]
    except OSError as e:
        log(f"Error checking port {port}: {e}", Colors.WARNING)
    return None

def kill_process(pid):
    try:
        if platform.system() == "Windows":
            subprocess.run(f"taskkill /F /PID {pid}", shell=True, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        else:
            subprocess.run(['kill', '-9', str(pid)], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        return True
    except OSError as e:
        log(f"  └─ Failed to kill PID {pid}: {e}", Colors.FAIL)
        return False

def clean_ports():
    log("[1/4] Checking service ports...", Colors.BLUE, bold=True)
    killed_count = 0

    for service, (_, port) in SERVICES.items():
        pid = get_process_on_port(port)
        if not pid:
            log(f"✓ Port {port} ({service}): AVAILABLE", Colors.GREEN)
            continue
        log(f"✓ Port {port} ({service}): IN USE (PID: {pid}) - killing...", Colors.WARNING, end=" ")
        if kill_process(pid):
            log("DONE", Colors.GREEN)
            killed_count += 1
        else:
            log("FAILED - try running as Administrator/sudo", Colors.FAIL)

    log(f"\nSummary: Killed {killed_count} processes.", Colors.CYAN)

# --- Startup ---

def port_open(port, timeout=1.0):
    try:
        with socket.create_connection(("localhost", port), timeout=timeout):
            return True
    except OSError:
        return False

def check_mongo():
    log("\n[2/4] Checking MongoDB...", Colors.BLUE, bold=True)
    if port_open(MONGO_PORT):
        log(f"✓ MongoDB reachable on port {MONGO_PORT}", Colors.GREEN)
        return
    log(f"❌ MongoDB is not listening on port {MONGO_PORT}", Colors.FAIL)
    sys.exit(1)

def start_services(reload=False):
    log("\n[3/4] Starting services...", Colors.BLUE, bold=True)
    env = {**os.environ, **LOCAL_ENV}
    processes = []
    for service, (target, port) in SERVICES.items():
        cmd = [sys.executable, "-m", "uvicorn", target, "--port", str(port)]
        if reload:
            cmd.append("--reload")
        processes.append(subprocess.Popen(cmd, env=env))
        log(f"✓ {service} launched on port {port}", Colors.GREEN)
    return processes

def wait_for_health():
    log("\n[4/4] Verifying services...", Colors.BLUE, bold=True)
    max_retries = 30
    for service, (_, port) in SERVICES.items():
        log(f"Checking {service} on port {port}...", end=" ")
        for _ in range(max_retries):
            if port_open(port):
                log("HEALTHY", Colors.GREEN)
                break
            time.sleep(1)
        else:
            log("TIMEOUT/FAILED", Colors.FAIL)

# --- Main ---

def main():
    parser = argparse.ArgumentParser(description="Cleanup ports and start the NomNom services")
    parser.add_argument("--reload", action="store_true", help="Run uvicorn with auto-reload")
    parser.add_argument("--no-clean", action="store_true", help="Skip killing processes on service ports")
    args = parser.parse_args()

    print_header()

    if not args.no_clean:
        clean_ports()
    check_mongo()
    processes = start_services(reload=args.reload)
    wait_for_health()

    log("\n" + "═" * 40, Colors.HEADER)
    log("✓ ALL SERVICES RUNNING", Colors.GREEN, bold=True)
    log("═" * 40, Colors.HEADER)
    log(f"\n- API Gateway: {Colors.BLUE}http://localhost:8000{Colors.ENDC}")
    log("Press Ctrl+C to stop all services.", Colors.CYAN)

    try:
        for process in processes:
            process.wait()
    finally:
        for process in processes:
            process.terminate()

if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        log("\nStopped.", Colors.WARNING)
        sys.exit(0)
