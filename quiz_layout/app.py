import cv2
import numpy as np
from fastapi import FastAPI, File, UploadFile, HTTPException
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from .core import detect_layout
from .page import LayoutInvariantError

app = FastAPI(title="Quiz Layout API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def decode_upload_to_bgr(upload: UploadFile) -> np.ndarray:
    data = upload.file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty file.")
    arr = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if img is None:
        raise HTTPException(status_code=400, detail="Could not decode image. Provide a valid JPG/PNG.")
    return img


@app.post("/match")
def match(file: UploadFile = File(...)):
    img = decode_upload_to_bgr(file)
    try:
        _, result = detect_layout(img)
    except LayoutInvariantError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return JSONResponse(result.to_dict())
