import base64
import os
import sys
import time

import cv2
import numpy as np
import requests

URL = os.getenv("GATEWAY_URL", "http://127.0.0.1:3000") + "/api/process-image"
ROUNDS = int(sys.argv[1]) if len(sys.argv) > 1 else 20
QUALITY = int(sys.argv[2]) if len(sys.argv) > 2 else 90

if __name__ == '__main__':
    img = np.zeros((480, 640, 3), dtype=np.uint8)
    img[:, :, 2] = np.linspace(0, 255, 640, dtype=np.uint8)
    _, buf = cv2.imencode('.jpg', img, [cv2.IMWRITE_JPEG_QUALITY, QUALITY])
    body = {'image_data': base64.b64encode(buf).decode('ascii'), 'image_format': 'jpeg'}
    print(f'Payload: {len(buf)} bytes JPEG (quality={QUALITY}), {ROUNDS} rounds')

    timings = []
    for _ in range(ROUNDS):
        start = time.time()
        try:
            r = requests.post(URL, json=body, timeout=5.0)
        except requests.RequestException as e:
            print('Error calling gateway:', e)
            sys.exit(1)
        timings.append((time.time() - start) * 1000.0)
        if r.status_code != 200:
            print('Status:', r.status_code, r.json())
            sys.exit(1)

    print('Last response:', r.json())
    print(f'RTT ms: min={min(timings):.1f} avg={sum(timings) / len(timings):.1f} max={max(timings):.1f}')
