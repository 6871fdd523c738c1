"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- 狀態機：集中管理所有狀態轉換
- RoundEngine：管理 Round 的生命週期、下注與玩家
- Ledger / Registry：下注簿與在線玩家
- Dispatcher：單一寫入者的指令佇列
- Scheduler：開局 / 收盤計時
"""
