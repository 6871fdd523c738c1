"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- MineService：選雷邏輯
- PayoffService：派彩邏輯
- NamingService：名稱與 ID 生成邏輯
"""
