"""Canned React Native guidance returned by the advisory tools."""

from typing import Iterable, Optional

PERFORMANCE_SCENARIOS = (
    "list_rendering",
    "navigation",
    "animations",
    "memory_usage",
    "bundle_size",
    "startup_time",
)

PERFORMANCE_GUIDES = {
    "list_rendering": """
## List Rendering Optimizations

### FlatList Best Practices:
- Provide `keyExtractor` for stable unique keys
- Implement `getItemLayout` when rows have a fixed height
- Enable `removeClippedSubviews` for long lists
- Tune `maxToRenderPerBatch` and `windowSize`
- Wrap row components in `React.memo`

### Example:
```jsx
<FlatList
  data={items}
  keyExtractor={(item) => item.id}
  getItemLayout={(data, index) => ({
    length: ITEM_HEIGHT,
    offset: ITEM_HEIGHT * index,
    index,
  })}
  removeClippedSubviews={true}
  maxToRenderPerBatch={10}
  windowSize={10}
  renderItem={({ item }) => <MemoizedItem item={item} />}
/>
```
""",
    "navigation": """
## Navigation Performance

### React Navigation Optimizations:
- Load screens lazily
- Prefer `useFocusEffect` over `useEffect` for screen work
- Keep header components light
- Use `freezeOnBlur` for heavy screens

### Example:
```jsx
const Stack = createNativeStackNavigator();

<Stack.Navigator screenOptions={{ lazy: true }}>
  <Stack.Screen
    name="Heavy"
    component={HeavyScreen}
    options={{ freezeOnBlur: true }}
  />
</Stack.Navigator>
```
""",
    "animations": """
## Animation Performance

### Use Native Animations:
- Prefer Reanimated 3 over the Animated API
- Use `useSharedValue` and `useAnimatedStyle`
- Keep animations on the UI thread
- Avoid animating layout properties
- With Animated, always pass `useNativeDriver: true`

### Example:
```jsx
import { useSharedValue, useAnimatedStyle, withSpring } from 'react-native-reanimated';

const offset = useSharedValue(0);
const animatedStyle = useAnimatedStyle(() => ({
  transform: [{ translateX: offset.value }],
}));

offset.value = withSpring(100);
```
""",
    "memory_usage": """
## Memory Management

### Best Practices:
- Remove event listeners and timers in `useEffect` cleanup
- Resize and cache images
- Bound in-memory caches
- Watch memory with `get_memory_info` or Android Studio Profiler

### Example:
```jsx
useEffect(() => {
  const subscription = someService.subscribe(handler);
  return () => subscription.unsubscribe();
}, []);
```
""",
    "bundle_size": """
## Bundle Size Optimization

### Techniques:
- Inspect the bundle with a visualizer
- Remove unused dependencies
- Replace wildcard imports with named imports
- Use Hermes and enable minification for release builds

### Commands:
```bash
npx react-native bundle --platform android --dev false --entry-file index.js \\
  --bundle-output android-bundle.js --assets-dest android-assets
```
""",
    "startup_time": """
## Startup Time Optimization

### Strategies:
- Keep the initial bundle small
- Lazy load screens and heavy modules
- Reduce work done before the first render
- Use Hermes for faster startup

### Implementation:
- Defer heavy computation until after the first frame
- Use `React.lazy` with `Suspense` for rarely used screens
- Avoid synchronous storage reads on launch
""",
}

PLATFORM_NOTES = {
    "ios": [
        "Use iOS-specific tools such as Instruments and CADisplayLink",
        "Handle iOS memory warnings",
        "Test across device sizes",
    ],
    "android": [
        "Enable R8/ProGuard for release builds",
        "Respect Android background execution limits",
        "Test across Android versions and low-end devices",
    ],
}

ARCHITECTURE_GUIDES = {
    "simple_app": """
## Simple App Architecture

### Recommended Structure:
```
src/
├── components/      # Reusable components
├── screens/         # Screen components
├── navigation/      # Navigation configuration
├── utils/           # Utility functions
├── constants/       # App constants
└── App.tsx
```

### State Management:
- React Context for small amounts of global state
- `useState` / `useReducer` for local state

### Navigation:
- React Navigation with a stack navigator, kept flat
""",
    "complex_app": """
## Complex App Architecture

### Recommended Structure:
```
src/
├── features/        # Feature-based organization
│   ├── auth/
│   ├── profile/
│   └── dashboard/
├── shared/
│   ├── components/
│   ├── hooks/
│   ├── utils/
│   └── types/
├── services/        # API clients
├── store/           # Global state
├── navigation/
└── App.tsx
```

### State Management:
- Redux Toolkit or Zustand for client state
- React Query for server state
- Context for theme and auth

### Best Practices:
- Feature folders with clear boundaries
- Keep business logic out of components
""",
    "enterprise": """
## Enterprise App Architecture

### Recommended Structure:
```
src/
├── core/            # Business logic
│   ├── domain/
│   ├── use-cases/
│   └── repositories/
├── infrastructure/
│   ├── api/
│   ├── storage/
│   └── services/
├── presentation/
│   ├── features/
│   ├── shared/
│   └── navigation/
├── config/
└── App.tsx
```

### Architecture Patterns:
- Clean Architecture with dependency inversion
- Domain-driven module boundaries

### State Management:
- Redux Toolkit with normalized, strictly typed state

### Testing Strategy:
- Unit tests for business logic
- Integration tests per feature
- E2E tests for critical flows
""",
}

GENERAL_ARCHITECTURE = """
## General Architecture Advice

### Core Principles:
- **Separation of Concerns**: keep business logic out of UI code
- **Component Composition**: build screens from small components
- **Single Responsibility**: one clear purpose per module

### Recommended Patterns:
- Container/presentational components
- Custom hooks for reusable logic
"""

FEATURE_GUIDES = {
    "authentication": """
### Authentication Architecture:
- Store tokens in Keychain/Keystore, never AsyncStorage
- Implement refresh tokens
- Support biometric unlock
- Handle session expiry gracefully
""",
    "offline_support": """
### Offline-First Architecture:
- Persist data locally with SQLite or MMKV
- Queue pending writes and sync when online
- Define a conflict resolution strategy
""",
    "real_time": """
### Real-Time Features:
- Use WebSockets or a managed real-time service
- Reconnect with backoff and expose connection state
- Pause subscriptions in the background to save battery
""",
    "analytics": """
### Analytics Integration:
- Wrap vendors behind an analytics abstraction
- Batch events
- Respect user consent and privacy regulations
""",
}

DEBUGGING_GUIDES = {
    "crash": """
## Debugging App Crashes

### Initial Steps:
1. **Check Logs:** `read_logcat` with priority E, or `adb logcat *:E`
2. **Reproduce in a debug build** and look for the red box error
3. **Common causes:** null access, native module mismatches, unhandled promise rejections, out of memory
{platform}
### Solutions:
```jsx
class ErrorBoundary extends React.Component {{
  componentDidCatch(error, errorInfo) {{
    reportError(error, errorInfo);
  }}

  render() {{
    return this.props.children;
  }}
}}
```
""",
    "performance": """
## Debugging Performance Issues

### Profiling Tools:
1. React DevTools Profiler
2. Perf Monitor from the dev menu
3. `get_frame_stats` and `get_memory_info` on Android
{platform}
### Common Issues:
- Unnecessary re-renders: use `React.memo`, `useMemo` and `useCallback`
- Heavy lists: replace `.map()` in ScrollView with FlatList
- Large bundles: remove unused dependencies
""",
    "networking": """
## Debugging Network Issues

### Common Problems:
1. SSL/TLS certificate errors
2. Timeouts
3. Cleartext traffic blocked
4. Device cannot reach the dev machine (use `reverse_port`)
{platform}
### Debugging Steps:
```jsx
api.interceptors.response.use(
  response => response,
  error => {{
    console.warn('Request failed:', error.response || error);
    return Promise.reject(error);
  }}
);
```
""",
    "build": """
## Debugging Build Issues

### Common Build Errors:
1. Dependency conflicts
2. Stale caches
3. Native module linking
4. Version mismatches
{platform}
### Resolution Steps:
```bash
rm -rf node_modules && npm install
npx react-native start --reset-cache
```
""",
    "ui": """
## Debugging UI Issues

### Common UI Problems:
1. Layout issues: check flexbox direction and sizing
2. Styles not applied: check StyleSheet keys
3. Keyboard covering inputs: use KeyboardAvoidingView
{platform}
### Tools:
- Element Inspector from the dev menu
- Temporary borders on containers to see layout
""",
}

PLATFORM_LABELS = {"ios": "iOS", "android": "Android"}

DEBUGGING_PLATFORM_NOTES = {
    "crash": {
        "ios": "- Check Xcode crash reports and symbolicate them\n- Profile with Instruments",
        "android": "- Inspect logcat for `FATAL EXCEPTION` and ANR traces\n- Profile with Android Profiler",
        "both": "- Check native logs on both platforms",
    },
    "performance": {
        "ios": "- Use Xcode Instruments Time Profiler",
        "android": "- Use Android Profiler and `dumpsys gfxinfo`",
        "both": "- Profile release builds on real devices",
    },
    "networking": {
        "ios": "- Check App Transport Security in Info.plist",
        "android": "- Check network_security_config and `usesCleartextTraffic`",
        "both": "- Check network configuration on both platforms",
    },
    "build": {
        "ios": "- Run `pod install` again and clear DerivedData",
        "android": "- Run `./gradlew clean` and check the JDK version",
        "both": "- Clean and rebuild both native projects",
    },
    "ui": {
        "ios": "- Check safe area handling and the status bar",
        "android": "- Test different densities and the hardware back button",
        "both": "- Test on multiple screen sizes",
    },
}

GENERAL_DEBUGGING = """
## General Debugging Guidance

### Step-by-Step Approach:
1. **Reproduce the Issue** with consistent steps
2. **Check Logs** for error messages
3. **Isolate the Problem** by removing code until it works
4. **Verify the Fix** on every affected platform

### Essential Tools:
- React DevTools
- logcat and Xcode console
- Breakpoint debugging
"""


def get_performance_optimizations(scenario: str, platform: str = "both") -> str:
    result = PERFORMANCE_GUIDES.get(
        scenario, "Performance optimization guidance not available for this scenario."
    )
    notes = PLATFORM_NOTES.get(platform)
    if notes:
        result += f"\n\n### Platform-Specific Notes ({platform.upper()}):\n"
        result += "\n".join(f"- {note}" for note in notes)
    return result


def get_architecture_advice(project_type: str, features: Iterable[str] = ()) -> str:
    advice = ARCHITECTURE_GUIDES.get(project_type, GENERAL_ARCHITECTURE)
    for feature in features:
        if feature in FEATURE_GUIDES:
            advice += "\n" + FEATURE_GUIDES[feature]
    return advice


def get_debugging_guidance(issue_type: str, platform: str = "both", error_message: Optional[str] = None) -> str:
    template = DEBUGGING_GUIDES.get(issue_type)
    if template is None:
        guidance = GENERAL_DEBUGGING
    else:
        notes = DEBUGGING_PLATFORM_NOTES[issue_type].get(platform, DEBUGGING_PLATFORM_NOTES[issue_type]["both"])
        label = PLATFORM_LABELS.get(platform, "Both platforms")
        guidance = template.format(platform=f"\n### Platform-Specific ({label}):\n{notes}\n")

    if error_message:
        guidance += f"""
### Specific Error Analysis:
**Error:** {error_message}

**Troubleshooting Steps:**
1. Search for this error in the React Native issue tracker
2. Check whether it is a known issue in your React Native version
3. Look for similar patterns in your codebase
4. Try updating the dependency involved if it is a known bug
"""
    return guidance
