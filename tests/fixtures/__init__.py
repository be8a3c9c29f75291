"""테스트 자산 레이어

- html_samples: 페이지 HTML 조각 (로직 없음)
- fakes: 네트워크/브라우저/영속화 대역
"""
