"""IPC client for sending commands to a running Storyline player."""

import json
import socket
from pathlib import Path
from typing import List, Optional, Tuple

from .server import get_socket_path


def send_command(
    command: str, args: Optional[List[str]] = None, socket_path: Optional[Path] = None
) -> Tuple[bool, str]:
    """
    Send a command to the running Storyline player.

    Args:
        command: Command name (e.g., 'play', 'seek', 'sleep')
        args: Command arguments (optional)
        socket_path: Override for the control socket location

    Returns:
        (success, message) tuple
            success: True if command executed successfully
            message: Response message or error description
    """
    socket_path = socket_path or get_socket_path()

    if not socket_path.exists():
        return False, "Storyline is not running"

    payload = {
        'command': command,
        'args': args or []
    }

    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.settimeout(20.0)
            sock.connect(str(socket_path))
            sock.sendall((json.dumps(payload) + '\n').encode('utf-8'))

            response_data = b''
            while b'\n' not in response_data:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                response_data += chunk

        if not response_data:
            return False, "No response from Storyline"

        response = json.loads(response_data.decode('utf-8').strip())
        return response.get('success', False), response.get('message', 'No message')

    except socket.timeout:
        return False, "Storyline not responding (timeout)"
    except (ConnectionRefusedError, FileNotFoundError):
        return False, "Storyline is not running"
    except json.JSONDecodeError as e:
        return False, f"Invalid response from Storyline: {e}"
    except OSError as e:
        return False, f"Failed to send command: {e}"
