# app.py
import cv2
import numpy as np
import streamlit as st
from PIL import Image
from datetime import datetime

from happylens.config import load_config
from happylens.core import HappinessAnalyzer, first_face, meter_color
from happylens.detector import FaceMeshDetector
from happylens.models import AnalysisResult

# ---------- Page + CSS ----------
st.set_page_config(page_title="HappyLens", page_icon="😁", layout="centered")
st.title("HappyLens")
st.caption("Real-time happiness analysis through facial expressions. Everything runs locally.")

st.markdown("""
<style>
.big-emoji { font-size: 80px; line-height: 1; display: inline-block; animation: bounce 1.2s infinite; }
.big-score { font-size: 36px; font-weight: 800; margin-left: 14px; display: inline-block; }
@keyframes bounce {
  0%, 100% { transform: translateY(0) rotate(0deg); }
  30% { transform: translateY(-8px) rotate(6deg); }
  60% { transform: translateY(2px) rotate(-4deg); }
}
.meter-track { width: 100%; height: 18px; background: #444; border-radius: 9px; overflow: hidden; }
.meter-fill { height: 100%; transition: width 0.3s ease-out, background-color 0.3s ease-out; }
</style>
""", unsafe_allow_html=True)


# ---------- Detector + analyzer (one handle per server process) ----------
@st.cache_resource
def get_analyzer() -> HappinessAnalyzer:
    scoring, _ = load_config()
    detector = FaceMeshDetector(static_image_mode=True).open()
    return HappinessAnalyzer(config=scoring, detector=detector)


analyzer = get_analyzer()


# ---------- UI helpers ----------
def show_meter(res: AnalysisResult) -> None:
    b, g, r = meter_color(res.score)
    st.markdown(
        f'<span class="big-emoji">{res.emoji}</span>'
        f'<span class="big-score">{res.score}%</span>'
        f'<div class="meter-track"><div class="meter-fill" '
        f'style="width:{res.score}%; background-color: rgb({r},{g},{b});"></div></div>',
        unsafe_allow_html=True,
    )
    st.subheader(res.label)


def landmarks_preview(img_rgb: np.ndarray, face) -> np.ndarray:
    frame_bgr = np.ascontiguousarray(cv2.flip(cv2.cvtColor(img_rgb, cv2.COLOR_RGB2BGR), 1))
    annotated = analyzer.annotate(frame_bgr, face)
    return cv2.cvtColor(annotated, cv2.COLOR_BGR2RGB)


def analyze(pil_img: Image.Image, origin_name: str, source_kind: str, show_landmarks: bool) -> None:
    img_rgb = np.array(pil_img.convert("RGB"))
    h, w = img_rgb.shape[:2]
    try:
        faces = analyzer.detect(img_rgb)
        res = analyzer.analyze_faces(faces, w, h, origin_name=origin_name, source=source_kind)
    except Exception as e:
        st.error(f"Analysis error: {e}"); return

    if res.faces_detected == 0:
        st.warning("No face detected. Try better lighting/framing.")
    show_meter(res)
    if show_landmarks:
        st.image(landmarks_preview(img_rgb, first_face(faces)), caption="Detected landmarks (mirrored)")
    with st.expander("Details (JSON preview)"):
        st.json(res.__dict__)


# ---------- Sidebar ----------
with st.sidebar:
    st.header("Controls")
    show_landmarks = st.toggle("Show landmarks", value=False)
    st.json(analyzer.config.to_dict(), expanded=False)

# ---------- Modes ----------
mode = st.radio("Choose input mode", ["📷 Camera", "🖼️ Image upload"], horizontal=True)

if mode.startswith("📷"):
    img_input = st.camera_input("Camera (allow access, then take a snapshot)")
    if img_input is not None:
        frame = Image.open(img_input).convert("RGB")
        analyze(frame, f"camera_{int(datetime.now().timestamp())}.jpg", "camera", show_landmarks)
else:
    file = st.file_uploader("Upload an image", type=["jpg", "jpeg", "png"])
    if file is not None:
        pil = Image.open(file).convert("RGB")
        st.image(pil, caption="Uploaded image", use_container_width=True)
        analyze(pil, file.name, "upload", show_landmarks)
