import streamlit as st
from streamlit_autorefresh import st_autorefresh

from tello_node.app.console import DroneConsole
from tello_node.config import default_config

# ========================
#   页面状态与对象初始化
# ========================
st.set_page_config(page_title="无人机Web控制台", layout="wide")

if "console" not in st.session_state:
    st.session_state.console = DroneConsole(default_config(silent=True))
console: DroneConsole = st.session_state.console

# ========================
#   页面布局
# ========================
st.title("Tello无人机 Web 控制面板")

with st.sidebar:
    st.header("控制命令")
    if st.button("进入SDK模式（command）"): st.success(console.send_cmd("command"))
    if st.button("起飞（takeoff）"): st.success(console.takeoff())
    if st.button("降落（land）"): st.success(console.land())
    st.write("---")
    col1, col2 = st.columns(2)
    with col1:
        if st.button("前进"): st.success(console.forward())
        if st.button("左移"): st.success(console.left())
    with col2:
        if st.button("后退"): st.success(console.back())
        if st.button("右移"): st.success(console.right())
    st.write("---")
    if st.button("查询电量"): st.success(console.battery())
    if st.button("开启遥测"):
        console.start_telemetry()
        st.info("已订阅状态端口")
    if st.button("关闭连接"):
        console.close()
        del st.session_state.console
        st.info("已关闭与无人机的连接")
        st.stop()

# ========================
#   遥测显示区（最近一次已知值）
# ========================
st.subheader("遥测")
state = console.snapshot()
if state:
    cols = st.columns(5)
    for i, key in enumerate(("bat", "h", "tof", "baro", "time", "pitch", "roll", "yaw", "templ", "temph")):
        if key in state:
            cols[i % 5].metric(key, f"{state[key]:g}")
    st.caption(f"已接收 {console.frames} 帧")
else:
    st.write("暂无遥测数据")

st_autorefresh(interval=500)

# ========================
#   日志显示
# ========================
st.subheader("控制日志")
if console.log:
    st.write('\n'.join(console.log[-20:]))  # 显示最近20条
