"""
Streamlit Frontend for Agentic Document Chain Processor
Connects to FastAPI backend for document ingestion and agent execution
"""
import streamlit as st
import requests
import pandas as pd
import plotly.graph_objects as go

from config import settings

# Configuration
API_BASE_URL = settings.API_BASE_URL
STEPS = ["upload", "preview", "config", "execute"]
STEP_LABELS = ["上傳", "預覽", "設定", "執行"]
MODEL_OPTIONS = {"gemini-2.5-pro": "Gemini 2.5 Pro", "gemini-2.5-flash": "Gemini 2.5 Flash"}
OCR_LANGUAGES = {"traditional-chinese": "繁體中文", "english": "English"}

st.set_page_config(
    page_title="Agentic AI Document Processor",
    page_icon="📄",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Custom CSS
st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        color: #1f77b4;
        text-align: center;
        padding: 1rem 0;
        border-bottom: 3px solid #1f77b4;
        margin-bottom: 2rem;
    }
    .step-active {
        background-color: #1f77b4;
        color: white;
        padding: 0.5rem 1rem;
        border-radius: 0.5rem;
        text-align: center;
        font-weight: bold;
    }
    .step-inactive {
        background-color: #f0f2f6;
        color: #1f77b4;
        padding: 0.5rem 1rem;
        border-radius: 0.5rem;
        text-align: center;
        opacity: 0.6;
    }
    .agent-card {
        background-color: #f0f2f6;
        padding: 1rem;
        border-radius: 0.5rem;
        border-left: 6px solid #1f77b4;
        margin: 0.5rem 0;
    }
</style>
""", unsafe_allow_html=True)


def check_api_health():
    """Check if API is running"""
    try:
        response = requests.get(f"{API_BASE_URL}/health", timeout=5)
        return response.status_code == 200
    except requests.RequestException:
        return False


def call_api(method: str, path: str, timeout=10, **kwargs) -> dict:
    """Call the backend; failures come back as {"error": ..., "detail": ...}"""
    try:
        response = requests.request(method, f"{API_BASE_URL}{path}", timeout=timeout, **kwargs)
    except requests.RequestException as e:
        return {"error": "ConnectionError", "detail": str(e)}

    if response.status_code >= 400:
        try:
            body = response.json()
        except ValueError:
            body = {"detail": response.text}
        body.setdefault("error", f"HTTP {response.status_code}")
        body["status_code"] = response.status_code
        return body

    if response.status_code == 204:
        return {}
    return response.json()


def new_session():
    """Create a backend session and return to the upload step"""
    snapshot = call_api("POST", "/sessions")
    if "error" in snapshot:
        st.error(f"❌ Could not create session: {snapshot['detail']}")
        st.stop()
    st.session_state["session_id"] = snapshot["session_id"]
    st.session_state["step"] = "upload"
    return snapshot


def get_snapshot() -> dict:
    """Current session state; a lost session (API restart) starts over"""
    if "session_id" not in st.session_state:
        return new_session()
    snapshot = call_api("GET", f"/sessions/{st.session_state['session_id']}")
    if snapshot.get("status_code") == 404:
        st.warning("Session expired, starting a new one.")
        return new_session()
    if "error" in snapshot:
        st.error(f"❌ API Error: {snapshot['detail']}")
        st.stop()
    return snapshot


def go_to(step: str):
    st.session_state["step"] = step
    st.rerun()


def display_step_indicator(current: str):
    """Upload → Preview → Config → Execute"""
    cols = st.columns(len(STEPS))
    for col, step, label in zip(cols, STEPS, STEP_LABELS):
        css_class = "step-active" if step == current else "step-inactive"
        col.markdown(f'<div class="{css_class}">{label}</div>', unsafe_allow_html=True)
    st.markdown("")


def display_upload_step(session_id: str):
    """File upload and optional OCR"""
    st.markdown("## 📤 上傳文件")

    uploaded_file = st.file_uploader(
        "點擊或拖放文件",
        type=["txt", "md", "png", "jpg", "jpeg", "webp"],
        help="支援 TXT, MD, PNG, JPG, WEBP"
    )
    if not uploaded_file:
        return

    st.success(f"✅ 已選擇: {uploaded_file.name}")
    is_image = (uploaded_file.type or "").startswith("image/")

    ocr_language = "traditional-chinese"
    if is_image:
        st.image(uploaded_file, caption=uploaded_file.name, width=400)
        ocr_language = st.selectbox(
            "OCR 語言",
            options=list(OCR_LANGUAGES.keys()),
            format_func=lambda key: OCR_LANGUAGES[key]
        )

    label = "處理並預覽文件" if is_image else "下一步：預覽文件"
    if st.button(label, type="primary", use_container_width=True):
        with st.spinner("正在處理OCR..." if is_image else "Reading file..."):
            # OCR is awaited without a deadline
            result = call_api(
                "POST",
                f"/sessions/{session_id}/document/upload",
                timeout=None,
                files={"file": (uploaded_file.name, uploaded_file.getvalue(), uploaded_file.type)},
                data={"ocr_language": ocr_language}
            )
        if "error" in result:
            if result["error"] == "OcrFailure":
                st.error(f"❌ An error occurred during OCR processing. {result['detail']}")
            else:
                st.error(f"❌ {result['detail']}")
            return
        go_to("preview")


def display_preview_step(snapshot: dict, session_id: str):
    """Editable preview of the document text"""
    st.markdown("## 👁️ 文件預覽")

    document = snapshot["document"]
    if document.get("file_name"):
        st.caption(f"📄 {document['file_name']}")

    text = st.text_area(
        "可編輯的預覽結果",
        value=document["text"],
        height=400,
        placeholder="沒有可預覽的內容。在此處編輯文本..."
    )

    col1, col2, col3 = st.columns(3)
    col1.metric("Characters", len(text))
    col2.metric("Words", len(text.split()))
    col3.metric("Lines", len(text.splitlines()))

    back, forward = st.columns(2)
    if back.button("返回", use_container_width=True):
        go_to("upload")
    if forward.button("下一步：設定代理", type="primary", use_container_width=True):
        if text != document["text"]:
            result = call_api("PUT", f"/sessions/{session_id}/document", json={"text": text})
            if "error" in result:
                st.error(f"❌ Could not save document: {result['detail']}")
                return
        go_to("config")


def display_config_step(snapshot: dict, session_id: str):
    """Agent count and per-agent parameters"""
    st.markdown("## ⚙️ 代理設定")

    agents = snapshot["agents"]
    count = st.slider(
        "要使用的代理數量",
        min_value=1,
        max_value=len(agents),
        value=min(max(snapshot["active_count"], 1), len(agents))
    )

    edits = []
    for idx, agent in enumerate(agents[:count]):
        with st.expander(f"代理 {idx + 1}: {agent['name']}", expanded=idx == 0):
            prompt = st.text_area("提示詞", value=agent["prompt_template"], key=f"prompt_{idx}", height=100)
            col1, col2, col3 = st.columns(3)
            model = col1.selectbox(
                "模型",
                options=list(MODEL_OPTIONS.keys()),
                index=list(MODEL_OPTIONS.keys()).index(agent["model"]),
                format_func=lambda key: MODEL_OPTIONS[key],
                key=f"model_{idx}"
            )
            # The registry accepts any float; the sliders keep values in [0, 1]
            temperature = col2.slider(
                "溫度", 0.0, 1.0, float(min(max(agent["temperature"], 0.0), 1.0)), 0.1, key=f"temperature_{idx}"
            )
            top_p = col3.slider(
                "Top-P", 0.0, 1.0, float(min(max(agent["top_p"], 0.0), 1.0)), 0.05, key=f"top_p_{idx}"
            )
            edits.append((idx, agent, {
                "prompt_template": prompt,
                "model": model,
                "temperature": temperature,
                "top_p": top_p,
            }))

    back, forward = st.columns(2)
    if back.button("返回", use_container_width=True):
        go_to("preview")
    if forward.button("開始執行", type="primary", use_container_width=True):
        for idx, agent, values in edits:
            for field, value in values.items():
                if value == agent[field]:
                    continue
                result = call_api(
                    "PATCH", f"/sessions/{session_id}/agents/{idx}", json={"field": field, "value": value}
                )
                if "error" in result:
                    st.error(f"❌ Could not update {agent['name']} ({field}): {result['detail']}")
                    return

        result = call_api("POST", f"/sessions/{session_id}/chain/start", json={"agent_count": count})
        if "error" in result:
            st.error(f"❌ Could not start the chain: {result['detail']}")
            return
        go_to("execute")


def display_stage_timings(snapshot: dict):
    """Table and chart of completed stage durations"""
    rows = [
        {
            "Stage": idx + 1,
            "Agent": agent["name"],
            "Model": agent["model"],
            "Status": status,
            "Time (s)": round(result["duration_seconds"], 2),
        }
        for idx, (agent, result, status) in enumerate(
            zip(snapshot["agents"], snapshot["results"], snapshot["stage_statuses"])
        )
    ]
    if not rows:
        return

    st.markdown("#### ⏱️ Stage Summary")
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

    done = [row for row in rows if row["Status"] == "completed"]
    if done:
        fig = go.Figure(data=[
            go.Bar(
                x=[row["Agent"] for row in done],
                y=[row["Time (s)"] for row in done],
                marker_color='lightblue',
                text=[row["Time (s)"] for row in done],
                texttemplate='%{text:.2f}s',
                textposition='outside'
            )
        ])
        fig.update_layout(
            title="Agent Execution Time",
            xaxis_title="Agent",
            yaxis_title="Time (seconds)",
            height=350,
            showlegend=False
        )
        st.plotly_chart(fig, use_container_width=True)


def display_execute_step(snapshot: dict, session_id: str):
    """Run the agent under the cursor, then advance manually"""
    results = snapshot["results"]
    total = len(results)
    if total == 0:
        st.info("Chain not started yet.")
        if st.button("返回設定"):
            go_to("config")
        return

    position = snapshot["cursor"]["position"]
    agent = snapshot["agents"][position]
    current = results[position]
    chain_status = snapshot["chain_status"]

    st.markdown(f"## ▶️ 執行代理 ({position + 1} / {total})")
    st.markdown(
        f'<div class="agent-card"><b>當前代理: {agent["name"]}</b><br/>'
        f'<small>{agent["model"]} · temperature {agent["temperature"]} · top-p {agent["top_p"]}</small></div>',
        unsafe_allow_html=True
    )

    stage_input = snapshot["document"]["text"] if position == 0 else results[position - 1]["output"]

    col_in, col_out = st.columns(2)
    with col_in:
        st.markdown("#### 輸入")
        st.text_area("input", value=current["input"] or stage_input, height=300, disabled=True,
                     label_visibility="collapsed")
    with col_out:
        st.markdown("#### 輸出")
        if current["output"]:
            st.markdown(current["output"])
            st.caption(f"Execution Time: {current['duration_seconds']:.2f}s")
        else:
            st.info("尚未執行")

    run_col, next_col = st.columns(2)
    if run_col.button("執行代理", type="primary", use_container_width=True, disabled=bool(current["output"])):
        with st.spinner(f"Executing {agent['name']}..."):
            # Stage calls are awaited without a deadline
            result = call_api("POST", f"/sessions/{session_id}/chain/stages/{position}/run", timeout=None)
        if "error" in result:
            st.error(
                f"❌ An error occurred while executing {result.get('agent_name', agent['name'])}. "
                f"{result['detail']}"
            )
        else:
            st.rerun()

    if next_col.button("下一個代理", use_container_width=True, disabled=chain_status != "stage_ready"):
        result = call_api("POST", f"/sessions/{session_id}/chain/advance")
        if "error" in result:
            st.error(f"❌ {result['detail']}")
        else:
            st.rerun()

    if chain_status == "all_complete":
        st.success("✅ All agents completed")

    completed = [(idx, r) for idx, r in enumerate(results) if r["output"] and idx != position]
    if completed:
        st.markdown("#### ✅ Completed Stages")
        for idx, result in completed:
            with st.expander(f"代理 {idx + 1}: {snapshot['agents'][idx]['name']} ({result['duration_seconds']:.2f}s)"):
                st.markdown(result["output"])

    display_stage_timings(snapshot)

    st.markdown("---")
    st.markdown("### 💾 Download Report")
    report = call_api("GET", f"/sessions/{session_id}/report")
    if "error" in report:
        st.error(f"❌ Could not build report: {report['detail']}")
    else:
        st.download_button(
            label="📥 Download Report",
            data=report["content"].encode("utf-8"),
            file_name=report["filename"],
            mime="text/markdown"
        )

    if st.button("返回設定"):
        go_to("config")


def display_trace_log(snapshot: dict):
    """Remote call attempts for this session"""
    trace_log = snapshot.get("trace_log", [])
    if not trace_log:
        st.caption("No remote calls yet")
        return
    df = pd.DataFrame([
        {
            "Operation": entry["operation"],
            "Agent": entry.get("agent_name") or "-",
            "Model": entry["model"],
            "Latency (ms)": round(entry["latency_ms"]),
            "Error": entry.get("error_message") or "",
        }
        for entry in trace_log
    ])
    st.dataframe(df, use_container_width=True, hide_index=True)


def main():
    """Main Streamlit app"""

    st.markdown('<div class="main-header">📄 智能文件處理系統 Agentic AI Document Processor</div>',
                unsafe_allow_html=True)

    with st.sidebar:
        st.markdown("### 🔧 API Status")
        if check_api_health():
            st.success("✅ API Running")
        else:
            st.error("❌ API Offline")
            st.info("Start API: `python -m api.main`")
            st.stop()

        st.markdown("---")
        if st.button("🔄 New Session"):
            new_session()
            st.rerun()

    snapshot = get_snapshot()
    session_id = snapshot["session_id"]
    step = st.session_state.get("step", "upload")

    display_step_indicator(step)

    if step == "upload":
        display_upload_step(session_id)
    elif step == "preview":
        display_preview_step(snapshot, session_id)
    elif step == "config":
        display_config_step(snapshot, session_id)
    else:
        display_execute_step(snapshot, session_id)

    with st.sidebar:
        st.markdown("---")
        st.markdown("### 🔍 Execution Log")
        display_trace_log(snapshot)


if __name__ == "__main__":
    main()
