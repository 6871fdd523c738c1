"""
API 層

這個 package 只負責傳輸，不含業務邏輯：
- websocket：玩家的雙向通道（加入、下注、離線）
- connections：連線管理與事件廣播
- rounds / players：唯讀的 HTTP 查詢
"""
