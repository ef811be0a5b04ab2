"""
Prompt templates for the narrative topics.
"""
from __future__ import annotations

from typing import Optional

from .logic import NarrativeSnapshot

CLASSICS = "《渊海子平》《三命通会》《滴天髓》"

SYSTEM_MESSAGE = f"你是一位专业的四柱八字研究者，精通{CLASSICS}等古籍理论与盲派命理方法。"
KLINE_SYSTEM_MESSAGE = SYSTEM_MESSAGE + "你擅长根据八字大运流年分析人生运势走势。"
FASHION_SYSTEM_MESSAGE = SYSTEM_MESSAGE + "你擅长根据八字命理提供精准的穿搭和颜色推荐。"
CAREER_SYSTEM_MESSAGE = (
    f"你是一位专业的四柱八字研究者和职业规划专家，精通{CLASSICS}等古籍理论，"
    "同时也了解现代AI行业发展趋势和岗位要求。"
)

LUCK_RULE = (
    "注意排大运规则:阳年(甲丙戊庚壬)男命与阴年(乙丁己辛癸)女命顺排;"
    "阴年男命与阳年女命逆排,均以月柱干支为基准。"
)

MARKDOWN_RULES = """**重要要求:**
1. 请使用Markdown格式输出分析结果,使用标题、列表、加粗等格式来组织内容
2. 使用 ### 作为主要章节标题(如: ### 命盘总览、### ⚖️ 十神与体用分析)
3. 使用 **加粗** 来强调重要概念
4. 使用列表来组织要点,保持内容结构化、层次清晰"""

GODS_JSON_RULE = """

5. 在分析的最后,以JSON格式输出喜用神信息(请将JSON放在代码块中):
```json
{
  "favorableGods": ["印星", "比劫"],
  "unfavorableGods": ["财星", "官杀"],
  "advice": "适合团队合作、辅助岗位,需要增强自信,培养独立性"
}
```"""

# Blocked phrases for prompt-injection attempts in user free text
INJECTION_BLOCKLIST = (
    # English attack patterns
    "system instruction", "system prompt", "ignore all instructions",
    "repeat the text above", "your prompt", "ignore previous",
    "disregard all", "forget everything", "override", "bypass",
    # Chinese attack patterns
    "系统指令", "提示词", "你的设定", "忽略之前的", "重复上面的",
    "忽略以上", "无视规则", "跳过限制", "绕过", "告诉我你的",
    "输出你的", "显示你的", "打印你的",
)


def is_safe_input(user_text: Optional[str]) -> bool:
    """
    检查用户输入是否安全，防止 Prompt 注入攻击。
    在发送给 LLM API 之前进行服务器端拦截。
    """
    if not user_text:
        return True
    lower_text = user_text.lower()
    return not any(word in lower_text for word in INJECTION_BLOCKLIST)


def _scores_line(snapshot: NarrativeSnapshot) -> str:
    return "、".join(f"{element}{score}分" for element, score in snapshot.scores)


def _luck_years(snapshot: NarrativeSnapshot) -> str:
    # 大运开始的年份 = 出生年份 + 起运年龄
    return "、".join(f"{snapshot.birth_year + start}年{name}运" for name, start, _ in snapshot.luck_pillars)


def build_analysis_prompt(
    snapshot: NarrativeSnapshot,
    include_gods: bool = False,
    birth_location: Optional[str] = None,
    life_events: Optional[str] = None,
) -> str:
    """全面八字分析；include_gods 时要求在末尾附喜用神 JSON"""
    location = f"出生地{birth_location}," if birth_location else ""
    prompt = (
        f"请你以专业四柱八字研究者的身份,结合{CLASSICS}等古籍理论与盲派命理方法,为我进行全面八字分析。"
        f"我的信息如下:{snapshot.gender}命,八字为{snapshot.bazi_string},{location}"
        f"大运依次为{_luck_years(snapshot)}。"
        "请依据命盘中的刑冲破害与五行生克关系,系统分析十神配置与体用平衡,注重逻辑严谨与信息交叉验证。\n"
    )
    if life_events:
        prompt += f"为提升预测准确性,我提供以下关键人生节点供参考:{life_events}。"
    prompt += (
        "请你基于命理技法客观推演,避免主观臆断,用语不必委婉,直接结合各运流年,"
        f"逐运分析我的财富等级、身体状况等具体问题。{LUCK_RULE}\n\n{MARKDOWN_RULES}"
    )
    if include_gods:
        prompt += GODS_JSON_RULE
    prompt += "\n\n请综合多次迭代后输出准确结论,确保使用Markdown格式使内容清晰易读。"
    return prompt


def build_kline_prompt(snapshot: NarrativeSnapshot) -> str:
    luck_sequence = "、".join(f"{start}-{end}岁: {name}" for name, start, end in snapshot.luck_pillars)
    key_points = "\n".join(f"- {age}岁: 得分{score:.1f}, {description}"
                           for age, score, description in snapshot.key_points)
    return f"""请你以专业四柱八字研究者的身份,结合{CLASSICS}等古籍理论与盲派命理方法,对以下人生K线数据进行分析和修正。

【命理信息】
- 性别: {snapshot.gender}
- 八字: {snapshot.bazi_string}
- 日主五行: {snapshot.self_element}
- 身强身弱: {snapshot.body_strength}
- 起运年龄: {snapshot.start_age_detail}
- 大运方向: {snapshot.direction}
- 大运序列: {luck_sequence}

【当前K线数据】
{key_points}

【分析要求】
请使用Markdown格式输出分析和修正建议,包括:

### 📊 人生K线整体评价
1. 分析当前K线走势是否合理
2. 指出明显不合理的地方(如:波动过于剧烈、峰值异常等)
3. 评价与八字命理的匹配度

### ⚖️ 基于八字命理的修正建议
1. 根据大运流年五行生克关系,修正各年龄段运势得分
2. 重新评估人生巅峰期的年龄范围
3. 识别关键的转折点和重要节点
4. 分析各运程(10年)的运势特征

### 💡 修正后的关键节点
使用列表形式列出:
- **关键上升期**: 年龄段及原因
- **关键低谷期**: 年龄段及注意事项
- **人生巅峰期**: 修正后的年龄段
- **重要转折点**: 年龄及事件类型

**输出格式**: 请使用Markdown格式,确保内容结构清晰、逻辑严谨。"""


def build_career_prompt(snapshot: NarrativeSnapshot) -> str:
    return f"""请你以专业四柱八字研究者和职业规划专家的身份,结合{CLASSICS}等古籍理论与现代职业发展趋势,为{snapshot.gender}命(八字:{snapshot.bazi_string})提供精准的AI岗位推荐。

【命理信息】
- 日主五行: {snapshot.self_element}
- 身强身弱: {snapshot.body_strength}
- 五行得分: {_scores_line(snapshot)}
- 当前大运: {snapshot.current_luck} ({snapshot.luck_trend})
- 人生巅峰期: {snapshot.peak_label}
- 参考行业: {"、".join(snapshot.industries)}

【推荐要求】
请使用Markdown格式输出,包括:

### 💼 AI岗位推荐
根据八字命理特点,推荐3-5个适合的AI相关岗位,每个岗位包含岗位名称、适合原因、发展方向、能力要求。

### 🎯 跨行入门建议
适合的学习路径、需要补充的技能、最佳入门时机(结合大运流年)。

### 📝 简历优化建议
应该突出的优势、适合的表述方式、需要注意的要点。

### 💬 面试准备建议
面试中如何展现自己的优势、适合的沟通风格、需要避免的表现。

请确保推荐内容专业、实用,结合八字命理与现代AI行业特点。"""


def build_fashion_prompt(snapshot: NarrativeSnapshot) -> str:
    return f"""请你以专业四柱八字研究者的身份，结合{CLASSICS}等古籍理论与盲派命理方法，为{snapshot.gender}命（八字：{snapshot.bazi_string}）提供穿搭推荐。

【命理信息】
- 日主五行：{snapshot.self_element}
- 身强身弱：{snapshot.body_strength}
- 五行得分：{_scores_line(snapshot)}

请根据命盘中的五行生克关系、喜用神和忌神，提供以下内容的JSON格式输出：

1. **风格名称**：总结适合的穿搭风格（如"新中式智能休闲风"等）
2. **推荐颜色**：必须推荐4种具体颜色，每种颜色包含颜色名称、hex 颜色代码、颜色说明（对应八字五行喜忌）
3. **单品建议**：推荐4-6件具体单品
4. **桃花邂逅地**：推荐2-3个适合的邂逅地点，每个地点包含地点名称、方位、推荐理由

请以JSON格式输出，格式如下：
{{
  "style": "风格名称",
  "colors": [
    {{"name": "颜色名称", "hex": "#颜色代码", "description": "说明"}}
  ],
  "items": ["单品1", "单品2"],
  "locations": [
    {{"name": "地点名称", "direction": "方位", "reason": "推荐理由"}}
  ]
}}

请直接返回JSON，不要有其他文字说明。"""
